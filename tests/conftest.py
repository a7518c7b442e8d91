"""Pytest configuration and shared fixtures."""

import os
from decimal import Decimal

import pytest

# Set environment for testing BEFORE importing the package settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from safety_ai.core.config import DatabaseSettings
from safety_ai.core.database import Database
from safety_ai.database.models import AnalysisResult, Recommendation, SafetyReport
from safety_ai.models.enums import IncidentType, Priority, Severity


@pytest.fixture
def db_settings(tmp_path) -> DatabaseSettings:
    """File-backed SQLite settings using the drop-and-recreate profile.

    Returns:
        DatabaseSettings: Settings pointing at a per-test database file
    """
    return DatabaseSettings().model_copy(
        update={
            "url": f"sqlite+aiosqlite:///{tmp_path / 'safety_ai_test.db'}",
            "drop_existing": True,
            "enable_sample_data_seeding": True,
        }
    )


@pytest.fixture
async def database(db_settings):
    """Database migrated to head, disposed after the test."""
    database = Database(db_settings, environment="test")
    await database.initializer.initialize()
    yield database
    await database.dispose()


@pytest.fixture
async def uow(database):
    """Unit of work on the migrated test database."""
    async with database.unit_of_work() as uow:
        yield uow


@pytest.fixture
def make_report():
    """Factory for valid, unsaved SafetyReport entities."""

    def _make(**overrides) -> SafetyReport:
        values = {
            "file_name": "incident.pdf",
            "file_size": 2048,
            "content_type": "application/pdf",
            "extracted_text": "Worker slipped near loading dock",
            "uploaded_by": "inspector@example.com",
        }
        values.update(overrides)
        return SafetyReport(**values)

    return _make


@pytest.fixture
def make_analysis():
    """Factory for valid, unsaved AnalysisResult entities."""

    def _make(report: SafetyReport, /, **overrides) -> AnalysisResult:
        values = {
            "report_id": report.id,
            "incident_type": IncidentType.SLIP,
            "severity": Severity.MEDIUM,
            "risk_score": 5,
            "summary": "Slip hazard",
            "confidence_score": Decimal("0.90"),
            "processing_time_ms": 1200,
        }
        values.update(overrides)
        return AnalysisResult(**values)

    return _make


@pytest.fixture
def make_recommendation():
    """Factory for valid, unsaved Recommendation entities."""

    def _make(analysis: AnalysisResult, **overrides) -> Recommendation:
        values = {
            "analysis_id": analysis.id,
            "recommendation_type": "Preventive",
            "description": "Install anti-slip matting",
            "priority": Priority.MEDIUM,
            "estimated_cost": Decimal("100.00"),
            "estimated_time_hours": 2,
            "responsible_role": "Facility Manager",
        }
        values.update(overrides)
        return Recommendation(**values)

    return _make
