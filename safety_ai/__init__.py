"""SafetyAI persistence layer: entities, repositories, unit of work and schema bootstrap."""

__version__ = "0.1.0"
