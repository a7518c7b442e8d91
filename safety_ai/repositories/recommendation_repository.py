from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from safety_ai.database.models import AnalysisResult, Recommendation
from safety_ai.models.enums import Priority, RecommendationStatus
from safety_ai.repositories.base_repository import BaseRepository
from safety_ai.repositories.change_set import ChangeSet

# Critical first, Low last
PRIORITY_RANK = case(
    *[(Recommendation.priority == priority, priority.rank) for priority in Priority],
    else_=len(Priority) + 1,
)


class RecommendationRepository:
    """Repository for Recommendation records."""

    def __init__(self, session: AsyncSession, changes: Optional[ChangeSet] = None):
        self.base = BaseRepository(session, Recommendation, changes)
        self.session = session

    # Generic operations

    def add(self, recommendation: Recommendation) -> Recommendation:
        return self.base.add(recommendation)

    def add_range(self, recommendations: Iterable[Recommendation]) -> List[Recommendation]:
        return self.base.add_range(recommendations)

    async def get_by_id(self, recommendation_id: UUID) -> Optional[Recommendation]:
        return await self.base.get_by_id(recommendation_id)

    async def get_all(self) -> List[Recommendation]:
        return await self.base.get_all()

    async def find(self, *criteria) -> List[Recommendation]:
        return await self.base.find(*criteria)

    def update(self, recommendation: Recommendation) -> Recommendation:
        return self.base.update(recommendation)

    async def remove(self, recommendation: Recommendation) -> bool:
        return await self.base.remove(recommendation)

    async def remove_by_id(self, recommendation_id: UUID) -> bool:
        return await self.base.remove_by_id(recommendation_id)

    # Queries

    def _with_analysis(self, *criteria):
        """Select recommendations joined to their analysis, with analysis and report loaded."""
        return (
            select(Recommendation)
            .join(Recommendation.analysis)
            .where(*criteria)
            .options(selectinload(Recommendation.analysis).selectinload(AnalysisResult.report))
        )

    async def get_recommendations_by_status(self, status: RecommendationStatus) -> List[Recommendation]:
        query = self._with_analysis(Recommendation.status == status).order_by(
            AnalysisResult.created_date.desc()
        )
        return await self.base.fetch_all(query)

    async def get_recommendations_by_priority(self, priority: Priority) -> List[Recommendation]:
        query = self._with_analysis(Recommendation.priority == priority).order_by(
            AnalysisResult.created_date.desc()
        )
        return await self.base.fetch_all(query)

    async def get_recommendations_by_responsible_role(self, role: str) -> List[Recommendation]:
        query = self._with_analysis(Recommendation.responsible_role == role).order_by(
            AnalysisResult.created_date.desc()
        )
        return await self.base.fetch_all(query)

    async def get_pending_recommendations(self) -> List[Recommendation]:
        """Pending recommendations, most urgent first, then newest analysis first."""
        query = self._with_analysis(Recommendation.status == RecommendationStatus.PENDING).order_by(
            PRIORITY_RANK, AnalysisResult.created_date.desc()
        )
        return await self.base.fetch_all(query)

    async def get_recommendations_by_analysis_id(self, analysis_id: UUID) -> List[Recommendation]:
        query = (
            select(Recommendation)
            .where(Recommendation.analysis_id == analysis_id)
            .order_by(PRIORITY_RANK, Recommendation.id)
        )
        return await self.base.fetch_all(query)

    async def get_high_priority_recommendations(self) -> List[Recommendation]:
        """Pending recommendations with Critical or High priority."""
        query = self._with_analysis(
            Recommendation.status == RecommendationStatus.PENDING,
            Recommendation.priority.in_([Priority.CRITICAL, Priority.HIGH]),
        ).order_by(PRIORITY_RANK, AnalysisResult.created_date.desc())
        return await self.base.fetch_all(query)

    async def get_status_statistics(self) -> Dict[RecommendationStatus, int]:
        result = await self.base.execute(
            select(Recommendation.status, func.count()).group_by(Recommendation.status)
        )
        return {RecommendationStatus(status): count for status, count in result.all()}

    async def get_priority_statistics(self) -> Dict[Priority, int]:
        result = await self.base.execute(
            select(Recommendation.priority, func.count()).group_by(Recommendation.priority)
        )
        return {Priority(priority): count for priority, count in result.all()}

    async def get_total_estimated_cost(self) -> Decimal:
        value = await self.base.fetch_scalar(
            select(func.sum(Recommendation.estimated_cost)).where(Recommendation.estimated_cost.is_not(None))
        )
        return Decimal(str(value)) if value is not None else Decimal("0")

    async def get_total_estimated_time(self) -> int:
        value = await self.base.fetch_scalar(
            select(func.sum(Recommendation.estimated_time_hours)).where(
                Recommendation.estimated_time_hours.is_not(None)
            )
        )
        return int(value or 0)
