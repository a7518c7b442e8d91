"""Unit tests for entity defaults, validation and status transitions."""

from decimal import Decimal
from uuid import UUID

import pytest

from safety_ai.core.exceptions import ValidationError
from safety_ai.database.models import AnalysisResult, Recommendation, SafetyReport
from safety_ai.models.enums import (
    IncidentType,
    Priority,
    ProcessingStatus,
    RecommendationStatus,
    Severity,
)


class TestSafetyReport:
    """Test suite for SafetyReport."""

    def test_defaults(self):
        report = SafetyReport(file_name="a.pdf")

        assert isinstance(report.id, UUID)
        assert report.status == ProcessingStatus.PENDING
        assert report.is_active is True
        assert report.file_size == 0
        assert report.uploaded_date.tzinfo is not None
        assert report.processed_date is None

    def test_file_name_is_required(self):
        assert SafetyReport(file_name="  ").validation_errors() == ["file_name is required"]
        assert SafetyReport().validation_errors() == ["file_name is required"]

    def test_happy_path_transitions_stamp_processed_date(self):
        report = SafetyReport(file_name="a.pdf")

        report.transition_to(ProcessingStatus.PROCESSING)
        assert report.processed_date is None

        report.transition_to(ProcessingStatus.COMPLETED)
        assert report.status == ProcessingStatus.COMPLETED
        assert report.processed_date is not None

    def test_processing_can_require_review(self):
        report = SafetyReport(file_name="a.pdf", status=ProcessingStatus.PROCESSING)

        report.transition_to(ProcessingStatus.REQUIRES_REVIEW)

        assert report.status == ProcessingStatus.REQUIRES_REVIEW

    def test_illegal_transition_is_rejected(self):
        report = SafetyReport(file_name="a.pdf")

        with pytest.raises(ValidationError):
            report.transition_to(ProcessingStatus.COMPLETED)

        assert report.status == ProcessingStatus.PENDING

    def test_terminal_status_cannot_move(self):
        report = SafetyReport(file_name="a.pdf", status=ProcessingStatus.FAILED)

        with pytest.raises(ValidationError):
            report.transition_to(ProcessingStatus.PROCESSING)

    def test_same_status_is_noop(self):
        report = SafetyReport(file_name="a.pdf")

        report.transition_to(ProcessingStatus.PENDING)

        assert report.status == ProcessingStatus.PENDING

    def test_soft_delete_flag(self):
        report = SafetyReport(file_name="a.pdf")
        assert report.is_soft_deleted is False

        report.is_active = False
        assert report.is_soft_deleted is True


class TestAnalysisResult:
    """Test suite for AnalysisResult."""

    def _analysis(self, **overrides) -> AnalysisResult:
        values = {
            "report_id": SafetyReport(file_name="a.pdf").id,
            "incident_type": IncidentType.FALL,
            "severity": Severity.LOW,
            "confidence_score": Decimal("0.5"),
        }
        values.update(overrides)
        return AnalysisResult(**values)

    def test_defaults(self):
        analysis = self._analysis()

        assert analysis.processing_time_ms == 0
        assert analysis.ai_model == "Gemini-2.5"
        assert analysis.created_date is not None
        assert analysis.validation_errors() == []

    def test_required_fields(self):
        errors = AnalysisResult().validation_errors()

        assert "report_id is required" in errors
        assert "incident_type is required" in errors
        assert "severity is required" in errors
        assert "confidence_score is required" in errors

    def test_report_relationship_satisfies_report_id(self):
        report = SafetyReport(file_name="a.pdf")

        analysis = self._analysis(report_id=None, report=report)

        assert analysis.validation_errors() == []

    @pytest.mark.parametrize("score", [Decimal("-0.01"), Decimal("1.0001")])
    def test_confidence_out_of_range(self, score):
        errors = self._analysis(confidence_score=score).validation_errors()

        assert errors == ["confidence_score must be between 0 and 1"]

    @pytest.mark.parametrize("score", [Decimal("0"), Decimal("1")])
    def test_confidence_bounds_are_valid(self, score):
        assert self._analysis(confidence_score=score).validation_errors() == []

    @pytest.mark.parametrize("risk", [0, 11])
    def test_risk_score_out_of_range(self, risk):
        errors = self._analysis(risk_score=risk).validation_errors()

        assert errors == ["risk_score must be between 1 and 10"]

    @pytest.mark.parametrize(
        "incident_type,severity,expected",
        [
            (IncidentType.FALL, Severity.CRITICAL, True),
            (IncidentType.FIRE, Severity.LOW, True),
            (IncidentType.CHEMICAL_EXPOSURE, Severity.MEDIUM, True),
            (IncidentType.ELECTRICAL, Severity.LOW, True),
            (IncidentType.SLIP, Severity.HIGH, False),
            (IncidentType.NEAR_MISS, Severity.LOW, False),
        ],
    )
    def test_is_critical(self, incident_type, severity, expected):
        analysis = self._analysis(incident_type=incident_type, severity=severity)

        assert analysis.is_critical is expected


class TestRecommendation:
    """Test suite for Recommendation."""

    def _recommendation(self, **overrides) -> Recommendation:
        values = {"analysis_id": SafetyReport(file_name="a.pdf").id, "description": "Fix it"}
        values.update(overrides)
        return Recommendation(**values)

    def test_defaults(self):
        recommendation = self._recommendation()

        assert recommendation.priority == Priority.MEDIUM
        assert recommendation.status == RecommendationStatus.PENDING
        assert recommendation.validation_errors() == []

    def test_description_is_required(self):
        assert self._recommendation(description="").validation_errors() == ["description is required"]

    def test_analysis_relationship_satisfies_analysis_id(self):
        analysis = AnalysisResult(
            report=SafetyReport(file_name="a.pdf"),
            incident_type=IncidentType.FALL,
            severity=Severity.LOW,
            confidence_score=Decimal("0.5"),
        )

        recommendation = self._recommendation(analysis_id=None, analysis=analysis)

        assert recommendation.validation_errors() == []

    def test_workflow_moves_forward(self):
        recommendation = self._recommendation()

        recommendation.transition_to(RecommendationStatus.IN_PROGRESS)
        recommendation.transition_to(RecommendationStatus.COMPLETED)

        assert recommendation.status == RecommendationStatus.COMPLETED

    def test_pending_can_be_rejected_directly(self):
        recommendation = self._recommendation()

        recommendation.transition_to(RecommendationStatus.REJECTED)

        assert recommendation.status == RecommendationStatus.REJECTED

    def test_cannot_revert_to_pending(self):
        recommendation = self._recommendation(status=RecommendationStatus.IN_PROGRESS)

        with pytest.raises(ValidationError):
            recommendation.transition_to(RecommendationStatus.PENDING)


class TestPriority:
    """Test suite for Priority ranking."""

    def test_rank_orders_critical_first(self):
        ordered = sorted(Priority, key=lambda priority: priority.rank)

        assert ordered == [Priority.CRITICAL, Priority.HIGH, Priority.MEDIUM, Priority.LOW]
