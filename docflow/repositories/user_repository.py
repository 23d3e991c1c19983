import uuid
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.database.models import User
from docflow.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for users and the companies they belong to."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, User)

    async def get_by_ids(self, user_ids: Iterable[uuid.UUID]) -> List[User]:
        """Fetch every user whose id is in ``user_ids``. Unknown ids are simply absent."""
        ids = list(set(user_ids))
        if not ids:
            return []
        result = await self.session.execute(select(User).where(User.id.in_(ids)))
        return list(result.scalars().all())

