"""Common utilities and helpers used across the engine."""

__all__ = [
    "etag",
    "exceptions",
    "ids",
    "logging",
    "middleware",
    "schema",
    "time",
]
