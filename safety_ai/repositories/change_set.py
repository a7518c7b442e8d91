"""Explicit write set shared by the repositories of one unit of work."""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional

from safety_ai.database.base import Base


class OperationKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    SOFT_DELETE = "soft_delete"


@dataclass(frozen=True)
class StagedOperation:
    """A write recorded in-session but not yet applied to the database."""

    kind: OperationKind
    entity: Any

    @property
    def key(self) -> tuple[type, uuid.UUID]:
        return type(self.entity), self.entity.id


class ChangeSet:
    """Ordered pending inserts, updates and deletes keyed by entity identity.

    At most one operation is kept per entity. Later operations fold into
    earlier ones: updating a staged insert keeps the insert, deleting a staged
    insert drops it entirely, and a staged delete is never downgraded.
    """

    def __init__(self) -> None:
        self._operations: dict[tuple[type, uuid.UUID], StagedOperation] = {}

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[StagedOperation]:
        return iter(list(self._operations.values()))

    @property
    def operations(self) -> tuple[StagedOperation, ...]:
        return tuple(self._operations.values())

    def get(self, model: type, entity_id: uuid.UUID) -> Optional[StagedOperation]:
        return self._operations.get((model, entity_id))

    def stage_insert(self, entity: Base) -> None:
        self._operations[(type(entity), entity.id)] = StagedOperation(OperationKind.INSERT, entity)

    def stage_update(self, entity: Base) -> None:
        key = (type(entity), entity.id)
        if key not in self._operations:
            self._operations[key] = StagedOperation(OperationKind.UPDATE, entity)

    def stage_delete(self, entity: Base, soft: bool = False) -> bool:
        """Stage removal of ``entity``.

        Returns:
            False when the call changed nothing (already staged for removal)
        """
        key = (type(entity), entity.id)
        existing = self._operations.get(key)
        if existing is not None:
            if existing.kind in (OperationKind.DELETE, OperationKind.SOFT_DELETE):
                return False
            if existing.kind is OperationKind.INSERT and not soft:
                del self._operations[key]
                return True
        kind = OperationKind.SOFT_DELETE if soft else OperationKind.DELETE
        self._operations[key] = StagedOperation(kind, entity)
        return True

    def contains(self, entity: Base) -> bool:
        op = self._operations.get((type(entity), entity.id))
        return op is not None and op.entity is entity

    def clear(self) -> None:
        self._operations.clear()

    def mark(self) -> dict[tuple[type, uuid.UUID], StagedOperation]:
        """Copy of the current operations to hand back to restore()."""
        return dict(self._operations)

    def restore(self, mark: dict[tuple[type, uuid.UUID], StagedOperation]) -> None:
        """Replace the staged operations with those recorded by mark()."""
        self._operations = dict(mark)
