"""Materialized spatial views over a notes vault."""

__version__ = "0.1.0"
