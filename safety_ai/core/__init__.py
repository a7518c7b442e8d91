"""Core configuration, database plumbing and error types."""
