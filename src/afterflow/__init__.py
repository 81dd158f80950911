"""Afterflow - session journal CSV exports and music link tooling."""

__version__ = "1.0.0"

__all__ = [
    "__version__",
]
