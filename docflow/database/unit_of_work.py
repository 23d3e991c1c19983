"""Explicit transaction boundary shared by the services.

A service describes the work it wants done atomically as an async callable
taking a ``TransactionScope``; ``UnitOfWork.run_in_transaction`` opens the
session, begins the transaction, hands the repositories bound to it to the
callable and commits when it returns. Any exception (including cancellation
of the calling task) rolls everything back.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docflow.core.config import DatabaseSettings
from docflow.core.exceptions import TransientInfraError
from docflow.repositories import (
    DocumentRepository,
    JobRepository,
    UploadRepository,
    UserRepository,
    WorkspaceRepository,
)
from docflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")


@dataclass
class TransactionScope:
    """Repositories sharing one session and therefore one transaction."""

    session: AsyncSession
    users: UserRepository
    workspaces: WorkspaceRepository
    uploads: UploadRepository
    documents: DocumentRepository
    jobs: JobRepository

    @classmethod
    def for_session(cls, session: AsyncSession) -> "TransactionScope":
        return cls(
            session=session,
            users=UserRepository(session),
            workspaces=WorkspaceRepository(session),
            uploads=UploadRepository(session),
            documents=DocumentRepository(session),
            jobs=JobRepository(session),
        )


class UnitOfWork:
    """Runs callables inside a bounded database transaction."""

    def __init__(
        self,
        session_maker: async_sessionmaker,
        timeout_seconds: float = 30.0,
        max_wait_seconds: float = 5.0,
    ):
        """Initialize the unit of work.

        Args:
            session_maker: Factory for sessions bound to the application engine
            timeout_seconds: Upper bound for the whole transaction, COMMIT included
            max_wait_seconds: Upper bound for acquiring a connection
        """
        self._session_maker = session_maker
        self.timeout_seconds = timeout_seconds
        self.max_wait_seconds = max_wait_seconds

    @classmethod
    def from_settings(cls, session_maker: async_sessionmaker, db_settings: DatabaseSettings) -> "UnitOfWork":
        return cls(
            session_maker,
            timeout_seconds=db_settings.transaction_timeout_seconds,
            max_wait_seconds=db_settings.transaction_max_wait_seconds,
        )

    async def _run(self, session: AsyncSession, work: Callable[[TransactionScope], Awaitable[T]]) -> T:
        async with session.begin():
            await asyncio.wait_for(session.connection(), timeout=self.max_wait_seconds)
            return await work(TransactionScope.for_session(session))

    async def run_in_transaction(self, work: Callable[[TransactionScope], Awaitable[T]]) -> T:
        """Run ``work`` atomically and return its result.

        Raises:
            TransientInfraError: If no connection was available within the max
                wait, or the transaction (COMMIT included) did not finish within
                the transaction timeout
        """
        async with self._session_maker() as session:
            try:
                return await asyncio.wait_for(
                    self._run(session, work),
                    timeout=self.timeout_seconds,
                )
            except (asyncio.TimeoutError, PoolTimeoutError) as e:
                LOGGER.warning(
                    "Database transaction timed out and was rolled back",
                    extra={
                        "timeout_seconds": self.timeout_seconds,
                        "max_wait_seconds": self.max_wait_seconds,
                    },
                )
                raise TransientInfraError(
                    "Database operation failed temporarily, please retry", original_error=e
                ) from e
