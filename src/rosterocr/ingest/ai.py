"""Language-model assisted extraction with a mandatory deterministic fallback."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field

from rosterocr.config.positions import (
    ATTRIBUTE_MAX,
    ATTRIBUTE_MIN,
    OVERALL_KEY,
    ROSTER_POSITIONS,
    correct_position,
)
from rosterocr.ingest.normalize import normalize
from rosterocr.ingest.parser import parse
from rosterocr.models import RawCandidateRecord


logger = logging.getLogger(__name__)

SUFFIX_KEY = "SUFFIX"

SYSTEM_PROMPT = (
    "You are a precise data extraction assistant that returns only valid JSON "
    "objects describing football roster players."
)

PROMPT_TEMPLATE = """Parse college football roster data from OCR text output.

OCR Text:
{text}

Your task:
1. Parse all player entries from the OCR text
2. Correct OCR errors in position codes
3. Separate name suffixes (Jr., Sr., II, III, IV, V) from last names
4. Ignore highlighted row artifacts such as arrows and block characters
5. Handle jersey-position-name-overall, name-year-position-overall and similar layouts

Valid position codes: {positions}

Position corrections:
- "OT", "0T", "Ol", "OI", "Dl", "D1", "DI" are misreads of "DT"; true tackles are LT or RT
- "HG" is "HB" and "W8" is "WR"

Return only players with:
- jersey_number (0-99, 0 when the screen has no jersey column)
- position (corrected)
- first_name (may be empty or an initial)
- last_name (required)
- overall_rating (40-99)
- attributes with OVR (required), SUFFIX (required, empty string when absent)
  and any other numeric columns

Return an empty players array when no valid players are present."""


class ExtractedAttributes(BaseModel):
    OVR: int
    SUFFIX: str = ""

    model_config = ConfigDict(extra="allow")


class ExtractedPlayer(BaseModel):
    jersey_number: int
    position: str
    first_name: str = ""
    last_name: str
    overall_rating: int
    attributes: ExtractedAttributes

    model_config = ConfigDict(extra="forbid")


class RosterExtraction(BaseModel):
    players: List[ExtractedPlayer] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


def response_schema() -> Dict[str, Any]:
    """JSON schema sent to the provider as the required response format."""

    return {
        "type": "object",
        "properties": {
            "players": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "jersey_number": {"type": "integer"},
                        "position": {"type": "string"},
                        "first_name": {"type": "string"},
                        "last_name": {"type": "string"},
                        "overall_rating": {"type": "integer"},
                        "attributes": {
                            "type": "object",
                            "properties": {
                                "OVR": {"type": "integer"},
                                "SUFFIX": {"type": "string"},
                            },
                            "required": ["OVR", "SUFFIX"],
                            "additionalProperties": True,
                        },
                    },
                    "required": [
                        "jersey_number",
                        "position",
                        "first_name",
                        "last_name",
                        "overall_rating",
                        "attributes",
                    ],
                    "additionalProperties": False,
                },
            }
        },
        "required": ["players"],
        "additionalProperties": False,
    }


class CompletionProvider(Protocol):
    async def complete(self, prompt: str, schema: Dict[str, Any]) -> str:
        ...


class OpenAIProvider:
    """Chat-completions provider with a JSON-schema response format."""

    def __init__(
        self,
        *,
        model: str = "gpt-4o-mini",
        client: Any = None,
        api_key: Optional[str] = None,
        temperature: float = 0.1,
    ):
        self.model = model
        self.temperature = temperature
        self._client = client
        self._api_key = api_key

    def _get_client(self) -> Any:
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def complete(self, prompt: str, schema: Dict[str, Any]) -> str:
        client = self._get_client()
        completion = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "roster_players", "strict": False, "schema": schema},
            },
            temperature=self.temperature,
        )
        content = completion.choices[0].message.content
        if content is None:
            raise ValueError("provider returned an empty message")
        return content


@dataclass(frozen=True)
class AIExtractionResult:
    candidates: List[RawCandidateRecord] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def usable(self) -> bool:
        return not self.failed and bool(self.candidates)


def _attribute_value(key: str, value: Any) -> Optional[int]:
    """Return *value* as a rating, ``None`` to drop it.

    Raises ``ValueError`` for NaN, infinite or fractional numbers.
    """

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValueError(f"attribute {key} is not an integer rating: {value!r}")
        value = int(value)
    if not (ATTRIBUTE_MIN <= value <= ATTRIBUTE_MAX):
        logger.debug("Dropping out-of-range attribute %s=%d", key, value)
        return None
    return value


def _to_candidate(player: ExtractedPlayer) -> RawCandidateRecord:
    attributes: Dict[str, int] = {}
    for key, value in (player.attributes.model_extra or {}).items():
        rating = _attribute_value(key, value)
        if rating is not None:
            attributes[key.upper()] = rating
    attributes[OVERALL_KEY] = player.attributes.OVR
    suffix = player.attributes.SUFFIX.strip() or None
    return RawCandidateRecord(
        jersey_number=player.jersey_number,
        position=correct_position(player.position),
        first_name=player.first_name.strip(),
        last_name=player.last_name.strip(),
        suffix=suffix,
        overall_rating=player.overall_rating,
        attributes=attributes,
    )


class AIExtractor:
    """Send cleaned text to a completion provider and validate the reply."""

    def __init__(self, provider: CompletionProvider, *, timeout: float = 60.0):
        self.provider = provider
        self.timeout = timeout

    def build_prompt(self, text: str) -> str:
        return PROMPT_TEMPLATE.format(text=text, positions=", ".join(sorted(ROSTER_POSITIONS)))

    async def extract(self, text: str) -> AIExtractionResult:
        prompt = self.build_prompt(text)
        try:
            raw = await asyncio.wait_for(
                self.provider.complete(prompt, response_schema()), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("AI extraction timed out after %.1fs", self.timeout)
            return AIExtractionResult(error="timeout")
        except Exception as exc:
            logger.warning("AI provider call failed: %s", exc)
            return AIExtractionResult(error=f"provider error: {exc}")

        try:
            extraction = RosterExtraction.model_validate(json.loads(raw))
            candidates = [_to_candidate(player) for player in extraction.players]
        except (ValueError, TypeError) as exc:
            logger.warning("AI response did not match the roster schema: %s", exc)
            return AIExtractionResult(error=f"schema violation: {exc}")

        logger.info("AI extraction returned %d candidates", len(candidates))
        return AIExtractionResult(candidates=candidates)


async def extract_candidates(
    lines: Sequence[str],
    ai_extractor: Optional[AIExtractor] = None,
) -> List[RawCandidateRecord]:
    """Run the AI step when configured, then the deterministic parser if it produced nothing.

    The deterministic parser always runs when the AI result failed or was
    empty.
    """

    if ai_extractor is not None:
        result = await ai_extractor.extract("\n".join(lines))
        if result.usable:
            return result.candidates
        logger.info(
            "Falling back to deterministic parsing (%s)",
            result.error or "no AI candidates",
        )
    return parse(lines)


async def extract_from_text(
    raw_text: str, ai_extractor: Optional[AIExtractor] = None
) -> List[RawCandidateRecord]:
    return await extract_candidates(normalize(raw_text), ai_extractor)
