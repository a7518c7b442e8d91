"""Database module for SQLAlchemy models and schema management."""

from safety_ai.database.base import Base, now_utc
from safety_ai.database.models import AnalysisResult, Recommendation, SafetyReport

__all__ = [
    "Base",
    "now_utc",
    "SafetyReport",
    "AnalysisResult",
    "Recommendation",
]
