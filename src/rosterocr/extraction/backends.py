"""Text extraction backends selectable by configuration.

Every backend exposes ``extract(image_path) -> str`` and raises an
``ExtractionError`` subclass on failure. Backends never retry; a failed pass
simply contributes no candidates.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Protocol

import pytesseract
from pytesseract import TesseractError, TesseractNotFoundError

from rosterocr.config_loader import PipelineSettings
from rosterocr.extraction.errors import (
    BackendUnavailable,
    ExtractionError,
    ExtractionTimeout,
    UnsupportedInput,
)


logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = frozenset({".png", ".jpg", ".jpeg"})


class TextExtractionBackend(Protocol):
    name: str

    def extract(self, image_path: Path) -> str:
        ...


def _read_image_bytes(image_path: Path, backend: str) -> bytes:
    path = Path(image_path)
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise UnsupportedInput(f"Unsupported image type: {path.name}", backend=backend)
    try:
        return path.read_bytes()
    except OSError as exc:
        raise UnsupportedInput(f"Unable to read {path}: {exc}", backend=backend) from exc


class TesseractBackend:
    """Local OCR engine through ``pytesseract``."""

    name = "local-engine"

    def __init__(
        self,
        *,
        tesseract_cmd: str | None = None,
        config: str = "--oem 3 --psm 6",
        timeout: float = 0,
    ):
        self.tesseract_cmd = tesseract_cmd
        self.config = config
        # 0 disables the subprocess timeout.
        self.timeout = timeout

    def extract(self, image_path: Path) -> str:
        path = Path(image_path)
        if path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise UnsupportedInput(f"Unsupported image type: {path.name}", backend=self.name)
        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd
        try:
            return pytesseract.image_to_string(str(path), config=self.config, timeout=self.timeout)
        except (TesseractNotFoundError, FileNotFoundError) as exc:
            raise BackendUnavailable(f"Tesseract is not installed: {exc}", backend=self.name) from exc
        except TesseractError as exc:
            raise UnsupportedInput(f"Tesseract rejected {path.name}: {exc}", backend=self.name) from exc
        except RuntimeError as exc:
            # pytesseract kills the subprocess and raises RuntimeError on timeout.
            raise ExtractionTimeout(
                f"Tesseract exceeded {self.timeout:.1f}s on {path.name}", backend=self.name
            ) from exc


class TextractBackend:
    """AWS Textract ``detect_document_text``; LINE blocks joined by newline."""

    name = "cloud-text-detect"

    def __init__(self, *, region_name: str = "us-east-1", timeout: float = 30.0, client=None):
        self.region_name = region_name
        self.timeout = timeout
        self._client = client

    def _get_client(self):
        if self._client is not None:
            return self._client
        try:
            import boto3
            from botocore.config import Config
        except ImportError as exc:
            raise BackendUnavailable("boto3 is not installed", backend=self.name) from exc
        config = Config(
            connect_timeout=self.timeout,
            read_timeout=self.timeout,
            retries={"max_attempts": 1},
        )
        self._client = boto3.client("textract", region_name=self.region_name, config=config)
        return self._client

    def extract(self, image_path: Path) -> str:
        payload = _read_image_bytes(image_path, self.name)
        client = self._get_client()
        try:
            response = client.detect_document_text(Document={"Bytes": payload})
        except Exception as exc:
            raise _classify_cloud_error(exc, self.name) from exc
        lines = [
            block.get("Text", "")
            for block in response.get("Blocks", [])
            if block.get("BlockType") == "LINE"
        ]
        logger.debug("Textract returned %d lines for %s", len(lines), image_path)
        return "\n".join(lines)


class VisionBackend:
    """Google Cloud Vision ``text_detection``; returns the full-text annotation."""

    name = "cloud-vision"

    def __init__(self, *, timeout: float = 30.0, client=None):
        self.timeout = timeout
        self._client = client

    def _get_client(self):
        if self._client is not None:
            return self._client
        try:
            from google.cloud import vision
        except ImportError as exc:
            raise BackendUnavailable("google-cloud-vision is not installed", backend=self.name) from exc
        try:
            self._client = vision.ImageAnnotatorClient()
        except Exception as exc:
            raise BackendUnavailable(f"Vision client unavailable: {exc}", backend=self.name) from exc
        return self._client

    def extract(self, image_path: Path) -> str:
        payload = _read_image_bytes(image_path, self.name)
        client = self._get_client()
        try:
            response = client.text_detection(image={"content": payload}, timeout=self.timeout)
        except Exception as exc:
            raise _classify_cloud_error(exc, self.name) from exc
        error = getattr(response, "error", None)
        if error is not None and getattr(error, "message", ""):
            raise UnsupportedInput(f"Vision error: {error.message}", backend=self.name)
        annotation = getattr(response, "full_text_annotation", None)
        if annotation is not None and getattr(annotation, "text", ""):
            return annotation.text
        annotations = getattr(response, "text_annotations", None) or []
        return annotations[0].description if annotations else ""


def _classify_cloud_error(exc: Exception, backend: str) -> ExtractionError:
    name = type(exc).__name__
    if name in {"NoCredentialsError", "EndpointConnectionError", "DefaultCredentialsError",
                "ServiceUnavailable", "PermissionDenied", "Unauthenticated"}:
        return BackendUnavailable(f"{name}: {exc}", backend=backend)
    return UnsupportedInput(f"{name}: {exc}", backend=backend)


_BACKENDS: Dict[str, Callable[[PipelineSettings], TextExtractionBackend]] = {
    TesseractBackend.name: lambda settings: TesseractBackend(
        tesseract_cmd=settings.tesseract_cmd,
        config=settings.tesseract_config,
        timeout=settings.extraction_timeout,
    ),
    TextractBackend.name: lambda settings: TextractBackend(
        region_name=settings.aws_region, timeout=settings.extraction_timeout
    ),
    VisionBackend.name: lambda settings: VisionBackend(timeout=settings.extraction_timeout),
}


def get_backend(selector: str, settings: PipelineSettings | None = None) -> TextExtractionBackend:
    """Return the backend registered under *selector*.

    Raises ``KeyError`` for selectors that are not registered.
    """

    try:
        factory = _BACKENDS[selector]
    except KeyError as exc:
        raise KeyError(f"Unsupported extraction backend: {selector}") from exc
    return factory(settings or PipelineSettings())
