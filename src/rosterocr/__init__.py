"""Roster screenshot OCR extraction and reconciliation."""

__version__ = "0.1.0"
