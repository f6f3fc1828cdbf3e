"""novelsync - background task orchestration and multi-source sync engine."""

__version__ = "0.1.0"
