"""SQLAlchemy models for safety reports, analyses and recommendations."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    ColumnElement,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    or_,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from safety_ai.core.exceptions import ValidationError
from safety_ai.database.base import Base, now_utc
from safety_ai.models.enums import (
    CRITICAL_INCIDENT_TYPES,
    IncidentType,
    Priority,
    ProcessingStatus,
    RecommendationStatus,
    Severity,
)


def _enum_column(enum_cls) -> SAEnum:
    """String-backed enum column storing member values."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


_REPORT_TRANSITIONS = {
    ProcessingStatus.PENDING: {ProcessingStatus.PROCESSING},
    ProcessingStatus.PROCESSING: {
        ProcessingStatus.COMPLETED,
        ProcessingStatus.FAILED,
        ProcessingStatus.REQUIRES_REVIEW,
    },
}

_RECOMMENDATION_TRANSITIONS = {
    RecommendationStatus.PENDING: {
        RecommendationStatus.IN_PROGRESS,
        RecommendationStatus.COMPLETED,
        RecommendationStatus.REJECTED,
    },
    RecommendationStatus.IN_PROGRESS: {
        RecommendationStatus.COMPLETED,
        RecommendationStatus.REJECTED,
    },
}


class SafetyReport(Base):
    """Uploaded incident report and its extraction state."""

    __tablename__ = "safety_reports"
    __required_fields__ = ("file_name",)
    __soft_delete_flag__ = "is_active"
    __table_args__ = (
        Index("ix_safety_reports_status_uploaded_date", "status", "uploaded_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    content_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    original_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    extracted_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[ProcessingStatus] = mapped_column(
        _enum_column(ProcessingStatus), nullable=False, index=True, default=ProcessingStatus.PENDING
    )
    uploaded_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    uploaded_date: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, index=True, default=now_utc
    )
    processed_date: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, index=True, default=True)

    # Relationships
    analysis_results: Mapped[list["AnalysisResult"]] = relationship(
        "AnalysisResult", back_populates="report", cascade="all, delete-orphan"
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("file_size", 0)
        kwargs.setdefault("status", ProcessingStatus.PENDING)
        kwargs.setdefault("uploaded_date", now_utc())
        kwargs.setdefault("is_active", True)
        super().__init__(**kwargs)

    def transition_to(self, status: ProcessingStatus) -> None:
        """Move the report forward in its processing lifecycle.

        Pending -> Processing -> Completed | Failed | RequiresReview. Setting
        the current status again is a no-op; anything else is rejected.
        Reaching a terminal status stamps ``processed_date``.
        """
        status = ProcessingStatus(status)
        if status == self.status:
            return
        if status not in _REPORT_TRANSITIONS.get(self.status, set()):
            raise ValidationError(
                f"Illegal report status transition {self.status.value} -> {status.value}"
            )
        self.status = status
        if status.is_terminal:
            self.processed_date = now_utc()

    def __repr__(self) -> str:
        return f"<SafetyReport {self.id} {self.file_name!r} {self.status.value}>"


class AnalysisResult(Base):
    """AI-derived classification of a report."""

    __tablename__ = "analysis_results"
    __required_fields__ = ("report_id", "incident_type", "severity", "confidence_score")
    __required_via__ = {"report_id": "report"}
    __table_args__ = (
        Index("ix_analysis_results_severity_created_date", "severity", "created_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("safety_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )
    incident_type: Mapped[IncidentType] = mapped_column(
        _enum_column(IncidentType), nullable=False, index=True
    )
    severity: Mapped[Severity] = mapped_column(_enum_column(Severity), nullable=False, index=True)
    risk_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    summary: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    confidence_score: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False, index=True)
    processing_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ai_model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_date: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, index=True, default=now_utc
    )

    # Relationships
    report: Mapped["SafetyReport"] = relationship("SafetyReport", back_populates="analysis_results")
    recommendations: Mapped[list["Recommendation"]] = relationship(
        "Recommendation", back_populates="analysis", cascade="all, delete-orphan"
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("processing_time_ms", 0)
        kwargs.setdefault("ai_model", "Gemini-2.5")
        kwargs.setdefault("created_date", now_utc())
        super().__init__(**kwargs)

    @hybrid_property
    def is_critical(self) -> bool:
        """Critical incident policy.

        An analysis is critical when its severity is the highest tier or its
        incident type is one of ``CRITICAL_INCIDENT_TYPES``. Both the Python
        and the SQL side of the query use this single definition.
        """
        return self.severity == Severity.CRITICAL or self.incident_type in CRITICAL_INCIDENT_TYPES

    @is_critical.inplace.expression
    @classmethod
    def _is_critical_expression(cls) -> ColumnElement[bool]:
        critical_types = sorted(CRITICAL_INCIDENT_TYPES, key=lambda incident: incident.value)
        return or_(cls.severity == Severity.CRITICAL, cls.incident_type.in_(critical_types))

    def validation_errors(self) -> list[str]:
        errors = super().validation_errors()
        if self.confidence_score is not None:
            if not Decimal(0) <= Decimal(str(self.confidence_score)) <= Decimal(1):
                errors.append("confidence_score must be between 0 and 1")
        if self.risk_score is not None and not 1 <= self.risk_score <= 10:
            errors.append("risk_score must be between 1 and 10")
        return errors

    def __repr__(self) -> str:
        return f"<AnalysisResult {self.id} {self.incident_type} {self.severity}>"


class Recommendation(Base):
    """Remediation action proposed by an analysis."""

    __tablename__ = "recommendations"
    __required_fields__ = ("analysis_id", "description")
    __required_via__ = {"analysis_id": "analysis"}
    __table_args__ = (
        Index("ix_recommendations_status_priority", "status", "priority"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    analysis_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("analysis_results.id", ondelete="CASCADE"), nullable=False, index=True
    )
    recommendation_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[Priority] = mapped_column(
        _enum_column(Priority), nullable=False, index=True, default=Priority.MEDIUM
    )
    estimated_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    estimated_time_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    responsible_role: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    status: Mapped[RecommendationStatus] = mapped_column(
        _enum_column(RecommendationStatus), nullable=False, index=True, default=RecommendationStatus.PENDING
    )

    # Relationships
    analysis: Mapped["AnalysisResult"] = relationship("AnalysisResult", back_populates="recommendations")

    def __init__(self, **kwargs):
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("priority", Priority.MEDIUM)
        kwargs.setdefault("status", RecommendationStatus.PENDING)
        super().__init__(**kwargs)

    def transition_to(self, status: RecommendationStatus) -> None:
        """Advance the recommendation workflow; reverting is rejected."""
        status = RecommendationStatus(status)
        if status == self.status:
            return
        if status not in _RECOMMENDATION_TRANSITIONS.get(self.status, set()):
            raise ValidationError(
                f"Illegal recommendation status transition {self.status.value} -> {status.value}"
            )
        self.status = status

    def __repr__(self) -> str:
        return f"<Recommendation {self.id} {self.priority} {self.status}>"
