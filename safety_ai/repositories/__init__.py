"""Repository layer modules."""

from safety_ai.repositories.analysis_result_repository import AnalysisResultRepository
from safety_ai.repositories.base_repository import BaseRepository
from safety_ai.repositories.change_set import ChangeSet, OperationKind, StagedOperation
from safety_ai.repositories.recommendation_repository import RecommendationRepository
from safety_ai.repositories.safety_report_repository import SafetyReportRepository
from safety_ai.repositories.unit_of_work import UnitOfWork, UnitOfWorkState

__all__ = [
    "AnalysisResultRepository",
    "BaseRepository",
    "ChangeSet",
    "OperationKind",
    "StagedOperation",
    "RecommendationRepository",
    "SafetyReportRepository",
    "UnitOfWork",
    "UnitOfWorkState",
]
