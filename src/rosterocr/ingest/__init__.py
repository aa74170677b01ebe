"""Turn raw OCR text into candidate player records."""

from .ai import AIExtractionResult, AIExtractor, CompletionProvider, OpenAIProvider, extract_candidates
from .classify import ScreenType, classify_screen
from .normalize import normalize, normalize_line
from .parser import parse, parse_detail_screen, parse_roster_list

__all__ = [
    "AIExtractionResult",
    "AIExtractor",
    "CompletionProvider",
    "OpenAIProvider",
    "ScreenType",
    "classify_screen",
    "extract_candidates",
    "normalize",
    "normalize_line",
    "parse",
    "parse_detail_screen",
    "parse_roster_list",
]
