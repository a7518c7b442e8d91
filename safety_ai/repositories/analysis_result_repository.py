from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from safety_ai.database.models import AnalysisResult
from safety_ai.models.enums import IncidentType, Severity
from safety_ai.repositories.base_repository import BaseRepository
from safety_ai.repositories.change_set import ChangeSet


class AnalysisResultRepository:
    """Repository for AnalysisResult records.

    List queries are ordered newest analysis first with the owning report
    eagerly loaded.
    """

    def __init__(self, session: AsyncSession, changes: Optional[ChangeSet] = None):
        self.base = BaseRepository(session, AnalysisResult, changes)
        self.session = session

    # Generic operations

    def add(self, analysis: AnalysisResult) -> AnalysisResult:
        return self.base.add(analysis)

    def add_range(self, analyses: Iterable[AnalysisResult]) -> List[AnalysisResult]:
        return self.base.add_range(analyses)

    async def get_by_id(self, analysis_id: UUID) -> Optional[AnalysisResult]:
        return await self.base.get_by_id(analysis_id)

    async def get_all(self) -> List[AnalysisResult]:
        return await self.base.get_all()

    async def find(self, *criteria) -> List[AnalysisResult]:
        return await self.base.find(*criteria)

    def update(self, analysis: AnalysisResult) -> AnalysisResult:
        return self.base.update(analysis)

    async def remove(self, analysis: AnalysisResult) -> bool:
        return await self.base.remove(analysis)

    async def remove_by_id(self, analysis_id: UUID) -> bool:
        return await self.base.remove_by_id(analysis_id)

    # Queries

    def _with_report(self, *criteria):
        return (
            select(AnalysisResult)
            .where(*criteria)
            .options(selectinload(AnalysisResult.report))
            .order_by(AnalysisResult.created_date.desc())
        )

    async def get_analysis_by_incident_type(self, incident_type: IncidentType) -> List[AnalysisResult]:
        return await self.base.fetch_all(self._with_report(AnalysisResult.incident_type == incident_type))

    async def get_analysis_by_severity(self, severity: Severity) -> List[AnalysisResult]:
        return await self.base.fetch_all(self._with_report(AnalysisResult.severity == severity))

    async def get_analysis_with_low_confidence(
        self, threshold: Union[Decimal, float, str]
    ) -> List[AnalysisResult]:
        """Get analyses flagged for human review.

        Args:
            threshold: Confidence cut-off; a score equal to it is not low

        Returns:
            Analyses with confidence_score strictly below threshold
        """
        query = self._with_report(
            AnalysisResult.confidence_score < Decimal(str(threshold))
        ).options(selectinload(AnalysisResult.recommendations))
        return await self.base.fetch_all(query)

    async def get_analysis_by_date_range(self, start_date: datetime, end_date: datetime) -> List[AnalysisResult]:
        """Get analyses created between two instants, both bounds inclusive."""
        return await self.base.fetch_all(
            self._with_report(
                AnalysisResult.created_date >= start_date,
                AnalysisResult.created_date <= end_date,
            )
        )

    async def get_analysis_with_recommendations(self, analysis_id: UUID) -> Optional[AnalysisResult]:
        query = (
            select(AnalysisResult)
            .where(AnalysisResult.id == analysis_id)
            .options(
                selectinload(AnalysisResult.report),
                selectinload(AnalysisResult.recommendations),
            )
        )
        return await self.base.fetch_one(query)

    async def get_critical_incidents(self) -> List[AnalysisResult]:
        """Get analyses matching the critical incident policy (see AnalysisResult.is_critical)."""
        query = self._with_report(AnalysisResult.is_critical).options(
            selectinload(AnalysisResult.recommendations)
        )
        return await self.base.fetch_all(query)

    async def get_incident_type_statistics(self) -> Dict[IncidentType, int]:
        return await self._group_count(AnalysisResult.incident_type, IncidentType)

    async def get_severity_statistics(self) -> Dict[Severity, int]:
        return await self._group_count(AnalysisResult.severity, Severity)

    async def get_average_confidence(self) -> float:
        value = await self.base.fetch_scalar(select(func.avg(AnalysisResult.confidence_score)))
        return float(value) if value is not None else 0.0

    async def get_average_processing_time(self) -> float:
        """Average processing time in milliseconds over analyses that recorded one."""
        query = select(func.avg(AnalysisResult.processing_time_ms)).where(
            AnalysisResult.processing_time_ms > 0
        )
        value = await self.base.fetch_scalar(query)
        return float(value) if value is not None else 0.0

    async def _group_count(self, column, enum_cls) -> dict:
        result = await self.base.execute(select(column, func.count()).group_by(column))
        return {enum_cls(key): count for key, count in result.all()}
