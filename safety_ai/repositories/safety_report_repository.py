from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from safety_ai.database.models import AnalysisResult, SafetyReport
from safety_ai.models.enums import ProcessingStatus
from safety_ai.repositories.base_repository import BaseRepository
from safety_ai.repositories.change_set import ChangeSet
from safety_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SafetyReportRepository:
    """Repository for SafetyReport records.

    Listing queries never return soft-deleted reports and are ordered newest
    upload first unless noted otherwise.
    """

    def __init__(self, session: AsyncSession, changes: Optional[ChangeSet] = None):
        """Initialize safety report repository.

        Args:
            session: SQLAlchemy async session
            changes: Change set shared with the owning unit of work
        """
        self.base = BaseRepository(session, SafetyReport, changes)
        self.session = session

    # Generic operations

    def add(self, report: SafetyReport) -> SafetyReport:
        return self.base.add(report)

    def add_range(self, reports: Iterable[SafetyReport]) -> List[SafetyReport]:
        return self.base.add_range(reports)

    async def get_by_id(self, report_id: UUID) -> Optional[SafetyReport]:
        return await self.base.get_by_id(report_id)

    async def get_all(self) -> List[SafetyReport]:
        return await self.base.get_all()

    async def find(self, *criteria) -> List[SafetyReport]:
        return await self.base.find(*criteria)

    def update(self, report: SafetyReport) -> SafetyReport:
        return self.base.update(report)

    async def remove(self, report: SafetyReport) -> bool:
        return await self.base.remove(report)

    async def remove_by_id(self, report_id: UUID) -> bool:
        return await self.base.remove_by_id(report_id)

    # Queries

    def _active(self):
        return select(SafetyReport).where(SafetyReport.is_active.is_(True))

    async def get_reports_by_status(self, status: ProcessingStatus) -> List[SafetyReport]:
        query = (
            self._active()
            .where(SafetyReport.status == status)
            .order_by(SafetyReport.uploaded_date.desc())
        )
        return await self.base.fetch_all(query)

    async def get_reports_by_user(self, user_id: str) -> List[SafetyReport]:
        query = (
            self._active()
            .where(SafetyReport.uploaded_by == user_id)
            .order_by(SafetyReport.uploaded_date.desc())
        )
        return await self.base.fetch_all(query)

    async def get_reports_by_date_range(self, start_date: datetime, end_date: datetime) -> List[SafetyReport]:
        """Get reports uploaded between two instants, both bounds inclusive."""
        query = (
            self._active()
            .where(SafetyReport.uploaded_date >= start_date, SafetyReport.uploaded_date <= end_date)
            .order_by(SafetyReport.uploaded_date.desc())
        )
        return await self.base.fetch_all(query)

    async def search_reports(self, search_term: Optional[str]) -> List[SafetyReport]:
        """Case-insensitive substring search over extracted text.

        Args:
            search_term: Text to look for; blank returns every active report

        Returns:
            Matching reports, newest first
        """
        if search_term is None or not search_term.strip():
            return await self.get_all_reports()

        query = (
            self._active()
            .where(SafetyReport.extracted_text.icontains(search_term, autoescape=True))
            .order_by(SafetyReport.uploaded_date.desc())
        )
        return await self.base.fetch_all(query)

    async def get_recent_reports(self, count: int = 10) -> List[SafetyReport]:
        if count <= 0:
            return []
        query = self._active().order_by(SafetyReport.uploaded_date.desc()).limit(count)
        return await self.base.fetch_all(query)

    async def get_all_reports(self) -> List[SafetyReport]:
        query = self._active().order_by(SafetyReport.uploaded_date.desc())
        return await self.base.fetch_all(query)

    async def get_pending_reports(self) -> List[SafetyReport]:
        """Pending reports in upload order, oldest first."""
        query = (
            self._active()
            .where(SafetyReport.status == ProcessingStatus.PENDING)
            .order_by(SafetyReport.uploaded_date.asc())
        )
        return await self.base.fetch_all(query)

    async def get_report_with_analysis(self, report_id: UUID) -> Optional[SafetyReport]:
        """Get an active report with its analyses and their recommendations loaded.

        Args:
            report_id: Report ID

        Returns:
            The report, or None if missing or soft-deleted
        """
        query = (
            self._active()
            .where(SafetyReport.id == report_id)
            .options(
                selectinload(SafetyReport.analysis_results).selectinload(AnalysisResult.recommendations)
            )
        )
        return await self.base.fetch_one(query)

    async def get_report_count_by_status(self, status: ProcessingStatus) -> int:
        return await self.base.count(SafetyReport.status == status, SafetyReport.is_active.is_(True))

    async def get_status_counts(self) -> Dict[ProcessingStatus, int]:
        """Count active reports per status; statuses without reports map to 0."""
        query = (
            select(SafetyReport.status, func.count())
            .where(SafetyReport.is_active.is_(True))
            .group_by(SafetyReport.status)
        )
        result = await self.base.execute(query)
        counts = {status: 0 for status in ProcessingStatus}
        for status, count in result.all():
            counts[ProcessingStatus(status)] = count
        LOGGER.debug(f"Report status counts: {counts}")
        return counts
