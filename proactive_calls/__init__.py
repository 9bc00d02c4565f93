"""Proactive guest call engine for hotel voice AI."""

__version__ = "1.0.0"
