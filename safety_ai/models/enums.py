"""Status and classification enumerations.

All enums are ``str``-valued and persisted by value, so the database holds
``"Completed"`` rather than ``"COMPLETED"``.
"""

from enum import Enum


class ProcessingStatus(str, Enum):
    """Lifecycle of an uploaded report."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REQUIRES_REVIEW = "RequiresReview"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ProcessingStatus.COMPLETED,
            ProcessingStatus.FAILED,
            ProcessingStatus.REQUIRES_REVIEW,
        )


class RecommendationStatus(str, Enum):
    """Workflow state of a remediation recommendation."""

    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


class IncidentType(str, Enum):
    FALL = "Fall"
    SLIP = "Slip"
    EQUIPMENT_FAILURE = "EquipmentFailure"
    CHEMICAL_EXPOSURE = "ChemicalExposure"
    NEAR_MISS = "NearMiss"
    FIRE = "Fire"
    ELECTRICAL = "Electrical"
    OTHER = "Other"


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        """Sort rank, 1 being the most urgent."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 1,
    Priority.HIGH: 2,
    Priority.MEDIUM: 3,
    Priority.LOW: 4,
}

# Incident types that are critical regardless of the assessed severity
CRITICAL_INCIDENT_TYPES = frozenset(
    {IncidentType.FIRE, IncidentType.CHEMICAL_EXPOSURE, IncidentType.ELECTRICAL}
)
