"""Typed failures raised by text extraction backends."""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for a single failed extraction pass."""

    kind = "extraction_error"

    def __init__(self, message: str, *, backend: str | None = None):
        super().__init__(message)
        self.backend = backend


class BackendUnavailable(ExtractionError):
    kind = "backend_unavailable"


class UnsupportedInput(ExtractionError):
    kind = "unsupported_input"


class ExtractionTimeout(ExtractionError):
    kind = "timeout"
