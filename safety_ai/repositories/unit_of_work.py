"""Unit of Work coordinating the repositories that share one session.

Typical use::

    async with unit_of_work() as uow:
        await uow.begin_transaction()
        uow.safety_reports.add(report)
        uow.analysis_results.add(analysis)
        await uow.save_changes()
        await uow.commit_transaction()

Leaving the block disposes the unit of work; a transaction that was begun
but not committed is rolled back.
"""

import asyncio
from enum import Enum
from typing import Any, Iterable, Optional

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import set_committed_value

from safety_ai.core.exceptions import InvalidOperationError, StorageError
from safety_ai.repositories.analysis_result_repository import AnalysisResultRepository
from safety_ai.repositories.change_set import ChangeSet, OperationKind, StagedOperation
from safety_ai.repositories.recommendation_repository import RecommendationRepository
from safety_ai.repositories.safety_report_repository import SafetyReportRepository
from safety_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


class UnitOfWorkState(str, Enum):
    IDLE = "idle"
    IN_TRANSACTION = "in_transaction"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    DISPOSED = "disposed"


EntityState = tuple[Any, dict[str, Any], dict[str, Any]]


def capture_entity_state(operations: Iterable[StagedOperation]) -> list[EntityState]:
    """Record the column values of staged entities.

    For each entity the last committed value and the pending modification of
    every loaded column are kept apart, so restore_entity_state() can bring
    back both after a session rollback has expired them.
    """
    captured = []
    for operation in operations:
        entity = operation.entity
        state = inspect(entity)
        committed: dict[str, Any] = {}
        modified: dict[str, Any] = {}
        for attr in state.mapper.column_attrs:
            key = attr.key
            if key not in state.dict:
                continue
            history = state.attrs[key].history
            if history.has_changes():
                modified[key] = state.dict[key]
                committed[key] = history.deleted[0] if history.deleted else state.dict[key]
            else:
                committed[key] = state.dict[key]
        captured.append((entity, committed, modified))
    return captured


def restore_entity_state(captured: Iterable[EntityState]) -> None:
    """Reload captured column values without touching the database."""
    for entity, committed, modified in captured:
        for key, value in committed.items():
            set_committed_value(entity, key, value)
        for key, value in modified.items():
            setattr(entity, key, value)


class UnitOfWork:
    """One session, three repositories, one atomic write set.

    Not safe for concurrent use by several tasks; create one per logical
    request.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize the unit of work.

        Args:
            session_factory: Factory producing the session this unit of work owns
        """
        self._session: AsyncSession = session_factory()
        self._changes = ChangeSet()
        self._state = UnitOfWorkState.IDLE
        self._begin_mark: Optional[dict] = None
        self._begin_state: list[EntityState] = []

        self._safety_reports: Optional[SafetyReportRepository] = None
        self._analysis_results: Optional[AnalysisResultRepository] = None
        self._recommendations: Optional[RecommendationRepository] = None

    async def __aenter__(self) -> "UnitOfWork":
        self._ensure_usable()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    @property
    def state(self) -> UnitOfWorkState:
        return self._state

    @property
    def in_transaction(self) -> bool:
        return self._state is UnitOfWorkState.IN_TRANSACTION

    @property
    def pending_changes(self) -> tuple[StagedOperation, ...]:
        """Staged operations that the next save_changes() will write."""
        return self._changes.operations

    @property
    def safety_reports(self) -> SafetyReportRepository:
        self._ensure_usable()
        if self._safety_reports is None:
            self._safety_reports = SafetyReportRepository(self._session, self._changes)
        return self._safety_reports

    @property
    def analysis_results(self) -> AnalysisResultRepository:
        self._ensure_usable()
        if self._analysis_results is None:
            self._analysis_results = AnalysisResultRepository(self._session, self._changes)
        return self._analysis_results

    @property
    def recommendations(self) -> RecommendationRepository:
        self._ensure_usable()
        if self._recommendations is None:
            self._recommendations = RecommendationRepository(self._session, self._changes)
        return self._recommendations

    def _ensure_usable(self) -> None:
        if self._state is UnitOfWorkState.DISPOSED:
            raise InvalidOperationError("Unit of work has been disposed")

    async def begin_transaction(self) -> None:
        """Open an explicit transaction.

        Raises:
            InvalidOperationError: If a transaction is already open
        """
        self._ensure_usable()
        if self.in_transaction:
            raise InvalidOperationError("Transaction already started")

        # End the implicit read transaction so the new one starts clean
        if self._session.in_transaction():
            await self._session.commit()

        self._begin_mark = self._changes.mark()
        self._begin_state = capture_entity_state(self._changes)
        self._state = UnitOfWorkState.IN_TRANSACTION
        LOGGER.debug("Transaction started")

    async def save_changes(self) -> int:
        """Write every staged operation as one flush.

        Outside an explicit transaction the flush is committed immediately;
        inside one it stays pending until commit_transaction(). When a write
        outside a transaction fails or is cancelled, the session is rolled
        back and the staged operations stay staged with the column values
        they had before the attempt, so calling save_changes() again retries
        the same write.

        Returns:
            Number of entities written

        Raises:
            StorageError: If the database rejects the write
        """
        self._ensure_usable()
        operations = self._changes.operations
        if not operations:
            return 0

        captured = capture_entity_state(operations)
        try:
            await self._apply(operations)
            await self._session.flush()
            if not self.in_transaction:
                await self._session.commit()
        except SQLAlchemyError as e:
            LOGGER.error(f"Error saving changes: {str(e)}", exc_info=True)
            if not self.in_transaction:
                await self._rollback_keeping(captured)
            raise StorageError("Failed to save changes", original_error=e) from e
        except asyncio.CancelledError:
            if not self.in_transaction:
                await self._rollback_keeping(captured)
            raise

        self._changes.clear()
        LOGGER.debug(f"Saved {len(operations)} staged operation(s)")
        return len(operations)

    async def _rollback_keeping(self, captured: list[EntityState]) -> None:
        try:
            await self._session.rollback()
        finally:
            restore_entity_state(captured)

    async def _apply(self, operations: tuple[StagedOperation, ...]) -> None:
        for operation in operations:
            entity = operation.entity
            if operation.kind is OperationKind.DELETE:
                await self._session.delete(entity)
                continue
            if operation.kind is OperationKind.SOFT_DELETE:
                setattr(entity, entity.__soft_delete_flag__, False)
            self._session.add(entity)

        untracked = [obj for obj in self._session.dirty if not self._changes.contains(obj)]
        if untracked:
            LOGGER.warning(
                f"{len(untracked)} modified entit(ies) were not registered with update() "
                "and will be written with this flush"
            )

    async def commit_transaction(self) -> None:
        """Commit the open transaction.

        Raises:
            InvalidOperationError: If no transaction is open
            StorageError: If the commit fails; the transaction is rolled back
        """
        self._ensure_usable()
        if not self.in_transaction:
            raise InvalidOperationError("No transaction to commit")
        if self._changes:
            LOGGER.warning(
                f"Committing with {len(self._changes)} unsaved staged operation(s); "
                "call save_changes() first to include them"
            )

        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            LOGGER.error(f"Error committing transaction: {str(e)}", exc_info=True)
            await self._session.rollback()
            self._changes.clear()
            self._state = UnitOfWorkState.ROLLED_BACK
            raise StorageError("Failed to commit transaction", original_error=e) from e

        self._state = UnitOfWorkState.COMMITTED
        self._begin_mark = None
        self._begin_state = []
        LOGGER.debug("Transaction committed")

    async def rollback_transaction(self) -> None:
        """Roll back the open transaction.

        Operations staged since begin_transaction() are discarded. Those
        staged before it are staged again, with the values they had when the
        transaction began, even if a save inside the transaction wrote them.

        Raises:
            InvalidOperationError: If no transaction is open
        """
        self._ensure_usable()
        if not self.in_transaction:
            raise InvalidOperationError("No transaction to rollback")

        try:
            await self._session.rollback()
        finally:
            self._changes.restore(self._begin_mark or {})
            restore_entity_state(self._begin_state)
            self._begin_mark = None
            self._begin_state = []
            self._state = UnitOfWorkState.ROLLED_BACK
        LOGGER.debug("Transaction rolled back")

    async def dispose(self) -> None:
        """Release the session, rolling back any open transaction.

        Safe to call more than once and from any state.
        """
        if self._state is UnitOfWorkState.DISPOSED:
            return

        was_in_transaction = self.in_transaction
        self._state = UnitOfWorkState.DISPOSED
        self._changes.clear()
        try:
            if was_in_transaction:
                LOGGER.info("Disposing unit of work with an open transaction; rolling back")
                await self._session.rollback()
        except Exception as e:
            LOGGER.error(
                "Rollback during dispose failed",
                exc_info=True,
                extra={"error": str(e)},
            )
        finally:
            try:
                await self._session.close()
            except Exception as e:
                LOGGER.error(
                    "Error closing session",
                    exc_info=True,
                    extra={"error": str(e)},
                )
