"""Tracing and observability helpers."""
