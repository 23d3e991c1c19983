"""Workspace ownership as a tagged union.

A workspace is owned either by a single user or by a company. The database
stores this as ``owner_type`` + ``owner_id``; code works with ``Owner`` so an
owner id can never be read without knowing which kind it is.
"""

from dataclasses import dataclass
from typing import Tuple, Union
from uuid import UUID

from docflow.models.enums import OwnerType


@dataclass(frozen=True)
class UserOwner:
    """Workspace owned by one user (solo workspace)."""

    user_id: UUID

    @property
    def owner_type(self) -> OwnerType:
        return OwnerType.USER


@dataclass(frozen=True)
class CompanyOwner:
    """Workspace owned by a company; every user of the company may access it."""

    company_id: UUID

    @property
    def owner_type(self) -> OwnerType:
        return OwnerType.COMPANY


Owner = Union[UserOwner, CompanyOwner]


def owner_from_columns(owner_type: OwnerType, owner_id: UUID) -> Owner:
    """Rebuild an ``Owner`` from its stored columns.

    Raises:
        ValueError: If the owner type is unknown
    """
    if owner_type == OwnerType.USER:
        return UserOwner(user_id=owner_id)
    if owner_type == OwnerType.COMPANY:
        return CompanyOwner(company_id=owner_id)
    raise ValueError(f"Unknown workspace owner type: {owner_type!r}")


def owner_to_columns(owner: Owner) -> Tuple[OwnerType, UUID]:
    """Split an ``Owner`` into the ``(owner_type, owner_id)`` column pair."""
    if isinstance(owner, UserOwner):
        return OwnerType.USER, owner.user_id
    if isinstance(owner, CompanyOwner):
        return OwnerType.COMPANY, owner.company_id
    raise TypeError(f"Not a workspace owner: {owner!r}")
