"""Adaptive Tutor - adaptive tutoring orchestration backend."""

__version__ = "0.1.0"
