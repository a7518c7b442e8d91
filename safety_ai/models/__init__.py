"""Enumerations shared by entities and repository queries."""

from safety_ai.models.enums import (
    CRITICAL_INCIDENT_TYPES,
    IncidentType,
    Priority,
    ProcessingStatus,
    RecommendationStatus,
    Severity,
)

__all__ = [
    "CRITICAL_INCIDENT_TYPES",
    "IncidentType",
    "Priority",
    "ProcessingStatus",
    "RecommendationStatus",
    "Severity",
]
