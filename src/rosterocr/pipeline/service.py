"""Upload pipeline: preprocess, extract, parse, merge, validate and reconcile."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from rosterocr.config_loader import PipelineSettings
from rosterocr.extraction import ExtractionError, ExtractionTimeout, TextExtractionBackend, get_backend
from rosterocr.imaging import preprocessed_variants_async
from rosterocr.ingest.ai import AIExtractor, extract_candidates
from rosterocr.ingest.normalize import normalize
from rosterocr.models import RawCandidateRecord
from rosterocr.persistence import COMPLETED, FAILED, PROCESSING, REQUIRES_VALIDATION, RosterStore
from rosterocr.records import ValidationIssue, merge_passes, reconcile, validate_candidates


logger = logging.getLogger(__name__)

BackendFactory = Callable[[str, PipelineSettings], TextExtractionBackend]
CancelCheck = Callable[[], bool]

NO_CANDIDATES_REASON = (
    "No players could be parsed from the screenshots. Make sure the image shows a "
    "roster table or a player detail screen clearly."
)
CANCELED_REASON = "Upload canceled"


class InvalidUploadError(ValueError):
    """Raised before any stage runs when the job input is malformed."""


class UploadCanceled(Exception):
    """Raised between stages once cancellation has been requested."""


@dataclass(frozen=True)
class UploadOutcome:
    status: str
    inserted_count: int = 0
    updated_count: int = 0
    errors: List[ValidationIssue] = field(default_factory=list)
    candidates: List[RawCandidateRecord] = field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def completed(cls, inserted_count: int, updated_count: int) -> "UploadOutcome":
        return cls(status=COMPLETED, inserted_count=inserted_count, updated_count=updated_count)

    @classmethod
    def requires_validation(
        cls, errors: Iterable[ValidationIssue], candidates: Iterable[RawCandidateRecord]
    ) -> "UploadOutcome":
        return cls(status=REQUIRES_VALIDATION, errors=list(errors), candidates=list(candidates))

    @classmethod
    def failed(cls, reason: str) -> "UploadOutcome":
        return cls(status=FAILED, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": self.status}
        if self.status == COMPLETED:
            payload.update(inserted_count=self.inserted_count, updated_count=self.updated_count)
        elif self.status == REQUIRES_VALIDATION:
            payload["errors"] = [
                {"index": issue.index, "field": issue.field, "reason": issue.reason}
                for issue in self.errors
            ]
            payload["candidates"] = [candidate.model_dump() for candidate in self.candidates]
        else:
            payload["reason"] = self.reason
        return payload


def _default_backend_factory(selector: str, settings: PipelineSettings) -> TextExtractionBackend:
    return get_backend(selector, settings)


def _check_cancel(cancel_check: Optional[CancelCheck]) -> None:
    if cancel_check is not None and cancel_check():
        raise UploadCanceled(CANCELED_REASON)


async def extract_text(backend: TextExtractionBackend, image_path: Path, *, timeout: float) -> str:
    """Run the blocking backend call in a worker thread under *timeout*."""

    try:
        return await asyncio.wait_for(asyncio.to_thread(backend.extract, image_path), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ExtractionTimeout(
            f"Extraction exceeded {timeout:.1f}s for {image_path}", backend=backend.name
        ) from exc


async def run_extraction_pass(
    backend: TextExtractionBackend,
    variant: str,
    image_path: Path,
    *,
    timeout: float,
    ai_extractor: Optional[AIExtractor] = None,
) -> List[RawCandidateRecord]:
    """One backend call on one image variant; failures yield no candidates."""

    try:
        raw_text = await extract_text(backend, image_path, timeout=timeout)
    except ExtractionError as exc:
        logger.warning("%s pass on %s failed (%s): %s", variant, image_path, exc.kind, exc)
        return []
    logger.debug("OCR text from %s pass on %s:\n%s", variant, image_path, raw_text)
    candidates = await extract_candidates(normalize(raw_text), ai_extractor)
    logger.info("%s pass on %s produced %d candidates", variant, image_path, len(candidates))
    return candidates


async def process_upload(
    image_paths: Sequence[Path | str],
    scope_id: str,
    *,
    backend: Optional[str] = None,
    settings: Optional[PipelineSettings] = None,
    store: Optional[RosterStore] = None,
    ai_extractor: Optional[AIExtractor] = None,
    backend_factory: Optional[BackendFactory] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> UploadOutcome:
    """Process every image of one upload and reconcile the result into *store*.

    Without a store the outcome reports every valid record as an insert.
    """

    settings = settings or PipelineSettings.from_env()
    selector = backend or settings.backend
    factory = backend_factory or _default_backend_factory

    paths = [Path(path) for path in image_paths]
    if not paths:
        raise InvalidUploadError("At least one image is required")
    if not scope_id or not scope_id.strip():
        raise InvalidUploadError("A scope identifier is required")
    try:
        text_backend = factory(selector, settings)
    except KeyError as exc:
        raise InvalidUploadError(f"Unsupported extraction backend: {selector}") from exc

    pass_results: List[List[RawCandidateRecord]] = []
    for image_path in paths:
        _check_cancel(cancel_check)
        async with preprocessed_variants_async(image_path) as prepared:
            results = await asyncio.gather(
                *(
                    run_extraction_pass(
                        text_backend,
                        variant,
                        variant_path,
                        timeout=settings.extraction_timeout,
                        ai_extractor=ai_extractor,
                    )
                    for variant, variant_path in prepared.variants()
                )
            )
        pass_results.extend(results)

    _check_cancel(cancel_check)
    merged = merge_passes(pass_results)
    logger.info("Merged %d passes into %d candidates", len(pass_results), len(merged))
    if not len(merged):
        return UploadOutcome.failed(NO_CANDIDATES_REASON)

    validation = validate_candidates(merged)
    if not validation.ok:
        logger.info("Validation flagged %d issues across %d candidates", len(validation.errors), len(merged))
        return UploadOutcome.requires_validation(validation.errors, merged)

    _check_cancel(cancel_check)
    existing = store.fetch_scope_players(scope_id) if store is not None else []
    result = reconcile(validation.valid, existing)
    if store is not None:
        store.apply_reconciliation(scope_id, result)
    logger.info(
        "Reconciled scope %s: %d inserted, %d updated",
        scope_id,
        result.inserted_count,
        result.updated_count,
    )
    return UploadOutcome.completed(result.inserted_count, result.updated_count)


async def run_upload_job(
    store: RosterStore,
    upload_id: str,
    image_paths: Sequence[Path],
    scope_id: str,
    *,
    backend: Optional[str] = None,
    settings: Optional[PipelineSettings] = None,
    ai_extractor: Optional[AIExtractor] = None,
    backend_factory: Optional[BackendFactory] = None,
    cleanup_paths: Iterable[Path] = (),
) -> UploadOutcome:
    """Drive one stored upload job through the pipeline and record its outcome."""

    store.update_job_state(upload_id, state=PROCESSING)
    try:
        outcome = await process_upload(
            image_paths,
            scope_id,
            backend=backend,
            settings=settings,
            store=store,
            ai_extractor=ai_extractor,
            backend_factory=backend_factory,
            cancel_check=lambda: store.is_cancel_requested(upload_id),
        )
    except UploadCanceled:
        logger.info("Upload %s canceled", upload_id)
        outcome = UploadOutcome.failed(CANCELED_REASON)
    except InvalidUploadError as exc:
        outcome = UploadOutcome.failed(str(exc))
    except asyncio.CancelledError:
        store.update_job_state(upload_id, state=FAILED, message=CANCELED_REASON)
        raise
    except Exception as exc:
        store.update_job_state(upload_id, state=FAILED, message=str(exc))
        raise
    finally:
        for path in cleanup_paths:
            path.unlink(missing_ok=True)

    message = outcome.reason if outcome.status == FAILED else None
    store.update_job_state(upload_id, state=outcome.status, message=message, result=outcome.to_dict())
    return outcome
