"""Role and permission administration engine."""

__version__ = "0.1.0"
