"""Macro pad key-event service."""

__version__ = "0.1.0"
