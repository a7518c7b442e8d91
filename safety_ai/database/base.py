"""Shared SQLAlchemy base and helpers."""

from datetime import datetime, timezone
from typing import ClassVar, Optional

from sqlalchemy.orm import DeclarativeBase


def now_utc() -> datetime:
    """Return an aware UTC datetime for default timestamps."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    Subclasses declare ``__required_fields__`` for pre-staging validation and
    may name a boolean ``__soft_delete_flag__`` column, in which case removal
    clears the flag instead of deleting the row.
    """

    __required_fields__: ClassVar[tuple[str, ...]] = ()
    # Required foreign keys that a set relationship fills in at flush time
    __required_via__: ClassVar[dict[str, str]] = {}
    __soft_delete_flag__: ClassVar[Optional[str]] = None

    def validation_errors(self) -> list[str]:
        """Return human-readable problems that would prevent staging."""
        errors = []
        for field in self.__required_fields__:
            value = getattr(self, field, None)
            if value is None and field in self.__required_via__:
                value = getattr(self, self.__required_via__[field], None)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.append(f"{field} is required")
        return errors

    @property
    def is_soft_deleted(self) -> bool:
        flag = self.__soft_delete_flag__
        return flag is not None and getattr(self, flag) is False
