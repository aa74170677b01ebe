"""Text extraction port and its backends."""

from .backends import (
    TesseractBackend,
    TextExtractionBackend,
    TextractBackend,
    VisionBackend,
    get_backend,
)
from .errors import BackendUnavailable, ExtractionError, ExtractionTimeout, UnsupportedInput

__all__ = [
    "BackendUnavailable",
    "ExtractionError",
    "ExtractionTimeout",
    "TesseractBackend",
    "TextExtractionBackend",
    "TextractBackend",
    "UnsupportedInput",
    "VisionBackend",
    "get_backend",
]
