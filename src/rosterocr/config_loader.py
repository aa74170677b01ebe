"""Load pipeline settings from the environment and persist JSON profiles."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional


logger = logging.getLogger(__name__)

BACKEND_SELECTORS = ("local-engine", "cloud-text-detect", "cloud-vision")

_ENV_PREFIX = "ROSTEROCR_"


def _env_float(name: str, default: float, *, clamp_min: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float for %s: %s; using default %.2f", name, raw, default)
        return default
    if clamp_min is not None:
        value = max(clamp_min, value)
    return value


def _env_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid int for %s: %s; using default %d", name, raw, default)
        return default
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    text = raw.strip().lower()
    if text in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "f", "no", "n", "off", ""}:
        return False
    logger.warning("Invalid boolean for %s: %s; using default %s", name, raw, default)
    return default


@dataclass(frozen=True)
class PipelineSettings:
    backend: str = "local-engine"
    extraction_timeout: float = 30.0
    ai_enabled: bool = False
    ai_model: str = "gpt-4o-mini"
    ai_timeout: float = 60.0
    tesseract_cmd: Optional[str] = None
    tesseract_config: str = "--oem 3 --psm 6"
    aws_region: str = "us-east-1"
    db_path: Optional[str] = None
    max_upload_bytes: int = 10 * 1024 * 1024
    max_upload_images: int = 10

    def __post_init__(self) -> None:
        if self.backend not in BACKEND_SELECTORS:
            raise ValueError(
                f"backend must be one of {', '.join(BACKEND_SELECTORS)}, got {self.backend!r}"
            )

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        defaults = cls()
        backend = os.getenv(f"{_ENV_PREFIX}BACKEND", defaults.backend).strip().lower()
        if backend not in BACKEND_SELECTORS:
            logger.warning("Unknown backend %s in environment; using %s", backend, defaults.backend)
            backend = defaults.backend
        return cls(
            backend=backend,
            extraction_timeout=_env_float(
                f"{_ENV_PREFIX}EXTRACTION_TIMEOUT", defaults.extraction_timeout, clamp_min=1.0
            ),
            ai_enabled=_env_bool(f"{_ENV_PREFIX}AI_ENABLED", defaults.ai_enabled),
            ai_model=os.getenv(f"{_ENV_PREFIX}AI_MODEL", defaults.ai_model),
            ai_timeout=_env_float(f"{_ENV_PREFIX}AI_TIMEOUT", defaults.ai_timeout, clamp_min=1.0),
            tesseract_cmd=os.getenv(f"{_ENV_PREFIX}TESSERACT_CMD") or None,
            tesseract_config=os.getenv(f"{_ENV_PREFIX}TESSERACT_CONFIG", defaults.tesseract_config),
            aws_region=os.getenv("AWS_REGION", defaults.aws_region),
            db_path=os.getenv(f"{_ENV_PREFIX}DB_PATH") or None,
            max_upload_bytes=_env_int(
                f"{_ENV_PREFIX}MAX_UPLOAD_BYTES", defaults.max_upload_bytes, min_value=1
            ),
            max_upload_images=_env_int(
                f"{_ENV_PREFIX}MAX_UPLOAD_IMAGES", defaults.max_upload_images, min_value=1
            ),
        )

    @classmethod
    def load(cls, path: Path) -> "PipelineSettings":
        data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown settings keys in %s: %s", path, ", ".join(unknown))
        return cls(**{key: value for key, value in data.items() if key in known})

    def save(self, path: Path) -> None:
        path.write_text(json.dumps(asdict(self), indent=2), encoding="utf-8")

    def with_overrides(self, **overrides: Any) -> "PipelineSettings":
        """Return a copy with every non-None override applied."""

        return replace(self, **{key: value for key, value in overrides.items() if value is not None})
