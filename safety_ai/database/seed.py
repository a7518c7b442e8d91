"""Deterministic sample data and binary fixtures for non-production use."""

import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional, Tuple

from safety_ai.database.base import now_utc
from safety_ai.database.models import AnalysisResult, Recommendation, SafetyReport
from safety_ai.models.enums import (
    IncidentType,
    Priority,
    ProcessingStatus,
    RecommendationStatus,
    Severity,
)
from safety_ai.utils.logging import get_logger

if TYPE_CHECKING:
    from safety_ai.repositories.unit_of_work import UnitOfWork

LOGGER = get_logger(__name__)

PDF_MAGIC = b"%PDF"
JPEG_MAGIC = bytes([0xFF, 0xD8, 0xFF, 0xE0])


def create_sample_pdf_bytes() -> bytes:
    """PDF-like payload: ``%PDF`` header followed by text content."""
    return PDF_MAGIC + "Sample safety incident report content for testing".encode("utf-8")


def create_sample_image_bytes() -> bytes:
    """JPEG-like payload: JFIF SOI/APP0 marker followed by text content."""
    return JPEG_MAGIC + "Sample image content for testing".encode("utf-8")


def create_large_pdf_bytes(size_in_bytes: int, seed: int = 0) -> bytes:
    """PDF-like payload of an exact size with pseudo-random filler.

    Args:
        size_in_bytes: Total length including the 4-byte header
        seed: Filler seed; equal seeds give equal payloads

    Returns:
        bytes: Payload of ``size_in_bytes`` bytes
    """
    if size_in_bytes < len(PDF_MAGIC):
        raise ValueError(f"size_in_bytes must be at least {len(PDF_MAGIC)}")
    rng = random.Random(seed)
    return PDF_MAGIC + rng.randbytes(size_in_bytes - len(PDF_MAGIC))


def build_test_reports(
    count: int,
    seed: int = 0,
    now: Optional[datetime] = None,
) -> List[SafetyReport]:
    """Build ``count`` completed reports with distinct upload timestamps.

    Upload dates fall within the past year; the per-index second offset keeps
    them unique so ordering by upload date is total.
    """
    rng = random.Random(seed)
    now = now or now_utc()
    reports = []
    for i in range(count):
        uploaded = now - timedelta(days=rng.randint(0, 364), seconds=i)
        reports.append(
            SafetyReport(
                file_name=f"test-report-{i}.pdf",
                file_size=rng.randint(1000, 10000),
                content_type="application/pdf",
                extracted_text=f"Test incident report {i} content",
                status=ProcessingStatus.COMPLETED,
                uploaded_by=f"test-user-{i % 10}",
                uploaded_date=uploaded,
                processed_date=uploaded + timedelta(minutes=rng.randint(1, 30)),
                is_active=True,
            )
        )
    return reports


async def seed_test_reports(uow: "UnitOfWork", count: int, seed: int = 0) -> List[SafetyReport]:
    """Bulk-insert generated reports through a unit of work and save them."""
    reports = uow.safety_reports.add_range(build_test_reports(count, seed=seed))
    await uow.save_changes()
    LOGGER.info(f"Seeded {len(reports)} test reports")
    return reports


def build_sample_incidents(
    now: Optional[datetime] = None,
) -> List[Tuple[SafetyReport, AnalysisResult, Recommendation]]:
    """The two reference incidents: a warehouse slip and a conveyor motor failure."""
    now = now or now_utc()

    slip_uploaded = now - timedelta(days=5)
    slip = SafetyReport(
        file_name="sample_incident_001.pdf",
        file_size=1024000,
        content_type="application/pdf",
        extracted_text=(
            "Employee slipped on wet floor in warehouse area. Minor injury to ankle. "
            "First aid administered on site."
        ),
        status=ProcessingStatus.COMPLETED,
        uploaded_by="john.doe@company.com",
        uploaded_date=slip_uploaded,
        processed_date=slip_uploaded + timedelta(minutes=2),
    )
    slip_analysis = AnalysisResult(
        report_id=slip.id,
        incident_type=IncidentType.SLIP,
        severity=Severity.MEDIUM,
        risk_score=5,
        summary=(
            "Slip incident due to wet floor conditions. Proper signage and immediate "
            "cleanup procedures needed."
        ),
        created_date=slip_uploaded + timedelta(minutes=2),
        confidence_score=Decimal("0.92"),
        processing_time_ms=15000,
    )
    slip_recommendation = Recommendation(
        analysis_id=slip_analysis.id,
        recommendation_type="Preventive",
        description=(
            "Install additional wet floor warning signs and implement immediate spill "
            "cleanup protocol"
        ),
        priority=Priority.HIGH,
        estimated_cost=Decimal("250.00"),
        estimated_time_hours=4,
        responsible_role="Facility Manager",
        status=RecommendationStatus.PENDING,
    )

    motor_uploaded = now - timedelta(days=3)
    motor = SafetyReport(
        file_name="equipment_failure_002.jpg",
        file_size=2048000,
        content_type="image/jpeg",
        extracted_text=(
            "Conveyor belt motor overheated causing production stoppage. No injuries "
            "reported. Equipment shut down for inspection."
        ),
        status=ProcessingStatus.COMPLETED,
        uploaded_by="jane.smith@company.com",
        uploaded_date=motor_uploaded,
        processed_date=motor_uploaded + timedelta(minutes=1),
    )
    motor_analysis = AnalysisResult(
        report_id=motor.id,
        incident_type=IncidentType.EQUIPMENT_FAILURE,
        severity=Severity.HIGH,
        risk_score=7,
        summary="Equipment failure due to motor overheating. Potential fire hazard and production impact.",
        created_date=motor_uploaded + timedelta(minutes=1),
        confidence_score=Decimal("0.88"),
        processing_time_ms=12000,
    )
    motor_recommendation = Recommendation(
        analysis_id=motor_analysis.id,
        recommendation_type="Corrective",
        description="Schedule immediate motor inspection and implement preventive maintenance schedule",
        priority=Priority.CRITICAL,
        estimated_cost=Decimal("1500.00"),
        estimated_time_hours=8,
        responsible_role="Maintenance Supervisor",
        status=RecommendationStatus.IN_PROGRESS,
    )

    return [
        (slip, slip_analysis, slip_recommendation),
        (motor, motor_analysis, motor_recommendation),
    ]


async def seed_sample_incidents(uow: "UnitOfWork") -> int:
    """Stage and save the reference incidents; returns the number of reports added."""
    incidents = build_sample_incidents()
    for report, analysis, recommendation in incidents:
        uow.safety_reports.add(report)
        uow.analysis_results.add(analysis)
        uow.recommendations.add(recommendation)
    await uow.save_changes()
    return len(incidents)
