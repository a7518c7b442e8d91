import uuid
from typing import Any, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from safety_ai.core.exceptions import NotFoundError, StorageError, ValidationError
from safety_ai.database.base import Base
from safety_ai.repositories.change_set import ChangeSet, OperationKind
from safety_ai.utils.logging import get_logger

# Define a generic type for SQLAlchemy models
ModelType = TypeVar("ModelType", bound=Base)

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Generic data-access primitive over one entity type.

    Reads go to the shared session; writes are only staged in the change set
    and become durable when the owning unit of work saves and commits.
    """

    def __init__(
        self,
        session: AsyncSession,
        model: Type[ModelType],
        changes: Optional[ChangeSet] = None,
    ):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session shared with sibling repositories
            model: The SQLAlchemy model class this repository manages
            changes: Change set shared with sibling repositories
        """
        self.session = session
        self.model = model
        self.changes = changes if changes is not None else ChangeSet()
        self.logger = LOGGER

    @property
    def _soft_delete_flag(self) -> Optional[str]:
        return self.model.__soft_delete_flag__

    def active_clause(self) -> Optional[ColumnElement[bool]]:
        """Filter excluding soft-deleted rows, or None if the model has no flag."""
        if self._soft_delete_flag is None:
            return None
        return getattr(self.model, self._soft_delete_flag).is_(True)

    def _check_valid(self, entity: ModelType) -> None:
        if not isinstance(entity, self.model):
            raise ValidationError(
                f"Expected {self.model.__name__}, got {type(entity).__name__}"
            )
        errors = entity.validation_errors()
        if errors:
            raise ValidationError(f"Invalid {self.model.__name__}: {'; '.join(errors)}", errors)

    def _is_tracked(self, entity: ModelType) -> bool:
        return self.changes.contains(entity) or entity in self.session

    def add(self, entity: ModelType) -> ModelType:
        """Stage an insert.

        Args:
            entity: New entity; an id is assigned if unset

        Returns:
            The staged entity

        Raises:
            ValidationError: If required fields are unset or values are out of range
        """
        self._check_valid(entity)
        if entity.id is None:
            entity.id = uuid.uuid4()
        self.changes.stage_insert(entity)
        return entity

    def add_range(self, entities: Iterable[ModelType]) -> List[ModelType]:
        """Stage several inserts; nothing is staged if any entity is invalid."""
        entities = list(entities)
        for entity in entities:
            self._check_valid(entity)
        return [self.add(entity) for entity in entities]

    async def get_by_id(self, id: uuid.UUID) -> Optional[ModelType]:
        """Get a record by its ID, seeing staged but unsaved changes.

        Args:
            id: The UUID of the record

        Returns:
            The record if found, None otherwise
        """
        staged = self.changes.get(self.model, id)
        if staged is not None:
            return None if staged.kind is OperationKind.DELETE else staged.entity
        try:
            return await self.session.get(self.model, id)
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving {self.model.__name__} by ID {id}: {str(e)}",
                exc_info=True,
            )
            raise StorageError(f"Failed to load {self.model.__name__} {id}", original_error=e) from e

    async def get_all(self) -> List[ModelType]:
        """Get all records, excluding soft-deleted ones."""
        query = select(self.model)
        active = self.active_clause()
        if active is not None:
            query = query.where(active)
        return await self.fetch_all(query)

    async def find(self, *criteria: ColumnElement[bool]) -> List[ModelType]:
        """Get records matching every criterion (soft-deleted rows included)."""
        return await self.fetch_all(select(self.model).where(*criteria))

    async def first_or_default(self, *criteria: ColumnElement[bool]) -> Optional[ModelType]:
        return await self.fetch_one(select(self.model).where(*criteria).limit(1))

    async def count(self, *criteria: ColumnElement[bool]) -> int:
        """Count persisted records matching every criterion."""
        query = select(func.count()).select_from(self.model).where(*criteria)
        return int(await self.fetch_scalar(query) or 0)

    def update(self, entity: ModelType) -> ModelType:
        """Mark a tracked entity as modified.

        Raises:
            NotFoundError: If the entity was never loaded or staged in this session
            ValidationError: If the modified entity is malformed
        """
        staged = self.changes.get(type(entity), entity.id)
        if not self._is_tracked(entity) or (staged is not None and staged.kind is OperationKind.DELETE):
            raise NotFoundError(
                f"{self.model.__name__} {entity.id} is not tracked by this unit of work"
            )
        self._check_valid(entity)
        self.changes.stage_update(entity)
        return entity

    async def remove(self, entity: ModelType) -> bool:
        """Stage removal of an entity (soft delete where the model defines a flag).

        Removing an entity that is already removed, or that does not exist,
        is a no-op.

        Returns:
            True if a removal was staged
        """
        if not self._is_tracked(entity):
            entity = await self.get_by_id(entity.id)
            if entity is None:
                return False
        soft = self._soft_delete_flag is not None
        if soft and entity.is_soft_deleted:
            return False
        staged = self.changes.stage_delete(entity, soft=soft)
        if staged:
            self.logger.debug(f"Staged {'soft ' if soft else ''}delete of {self.model.__name__} {entity.id}")
        return staged

    async def remove_by_id(self, id: uuid.UUID) -> bool:
        entity = await self.get_by_id(id)
        if entity is None:
            return False
        return await self.remove(entity)

    async def remove_range(self, entities: Iterable[ModelType]) -> int:
        removed = 0
        for entity in list(entities):
            if await self.remove(entity):
                removed += 1
        return removed

    async def fetch_all(self, query: Select) -> List[Any]:
        """Execute a select and return all scalar rows as a list."""
        result = await self.execute(query)
        return list(result.scalars().all())

    async def fetch_one(self, query: Select) -> Optional[Any]:
        result = await self.execute(query)
        return result.scalars().first()

    async def fetch_scalar(self, query: Select) -> Any:
        result = await self.execute(query)
        return result.scalar_one_or_none()

    async def execute(self, query: Select):
        try:
            return await self.session.execute(query)
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error querying {self.model.__name__}: {str(e)}",
                exc_info=True,
            )
            raise StorageError(f"Query on {self.model.__name__} failed", original_error=e) from e
