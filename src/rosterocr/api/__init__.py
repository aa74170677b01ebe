"""REST API for roster screenshot uploads."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from uuid import uuid4

from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, UploadFile

from rosterocr.api.schemas import (
    PlayerResponse,
    ScopePlayersResponse,
    UploadAccepted,
    UploadJobResponse,
)
from rosterocr.config_loader import BACKEND_SELECTORS, PipelineSettings
from rosterocr.extraction.backends import SUPPORTED_SUFFIXES
from rosterocr.ingest.ai import AIExtractor, OpenAIProvider
from rosterocr.models import StoredPlayerRecord
from rosterocr.persistence import PENDING, RosterStore, UploadJob
from rosterocr.pipeline.service import BackendFactory, run_upload_job


logger = logging.getLogger(__name__)

CONTENT_TYPE_SUFFIXES = {"image/png": ".png", "image/jpeg": ".jpg", "image/jpg": ".jpg"}


def job_to_response(job: UploadJob) -> UploadJobResponse:
    return UploadJobResponse(
        upload_id=job.upload_id,
        state=job.state,
        scope_id=job.scope_id,
        backend=job.backend,
        image_count=job.image_count,
        message=job.message,
        result=job.result,
        created_at=job.created_at,
        updated_at=job.updated_at,
        cancel_requested_at=job.cancel_requested_at,
        completed_at=job.completed_at,
    )


def player_to_response(player: StoredPlayerRecord) -> PlayerResponse:
    return PlayerResponse.model_validate(player.model_dump(exclude={"scope_id"}))


def _upload_suffix(upload: UploadFile) -> str | None:
    suffix = Path(upload.filename or "").suffix.lower()
    if suffix in SUPPORTED_SUFFIXES:
        return suffix
    return CONTENT_TYPE_SUFFIXES.get((upload.content_type or "").lower())


async def _write_temp(upload: UploadFile, suffix: str, max_bytes: int) -> Path | None:
    contents = await upload.read(max_bytes + 1)
    if len(contents) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Image {upload.filename or 'upload'} exceeds {max_bytes} bytes",
        )
    if not contents:
        return None
    tmp = tempfile.NamedTemporaryFile(delete=False, suffix=suffix, prefix="rosterocr-upload-")
    try:
        tmp.write(contents)
        tmp.flush()
    finally:
        tmp.close()
    return Path(tmp.name)


def create_app(
    db_path: Path | str | None = None,
    settings: PipelineSettings | None = None,
    backend_factory: BackendFactory | None = None,
    ai_extractor: AIExtractor | None = None,
) -> FastAPI:
    settings = settings or PipelineSettings.from_env()
    app = FastAPI(title="rosterocr")
    store = RosterStore(
        db_path or settings.db_path or Path(__file__).resolve().parent.parent / "rosterocr.sqlite"
    )
    app.state.roster_store = store
    app.state.settings = settings

    def _resolve_backend(selector: str) -> None:
        if backend_factory is not None:
            try:
                backend_factory(selector, settings)
            except KeyError as exc:
                raise HTTPException(status_code=400, detail=f"Unsupported backend: {selector}") from exc
        elif selector not in BACKEND_SELECTORS:
            raise HTTPException(status_code=400, detail=f"Unsupported backend: {selector}")

    def _resolve_ai(use_ai: bool | None) -> AIExtractor | None:
        enabled = settings.ai_enabled if use_ai is None else use_ai
        if not enabled:
            return None
        if ai_extractor is not None:
            return ai_extractor
        return AIExtractor(OpenAIProvider(model=settings.ai_model), timeout=settings.ai_timeout)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/scopes/{scope_id}/uploads", response_model=UploadAccepted, status_code=202)
    async def upload(
        scope_id: str,
        background_tasks: BackgroundTasks,
        images: list[UploadFile] = File(...),
        backend: str | None = Form(None),
        use_ai: bool | None = Form(None),
    ) -> UploadAccepted:
        if not scope_id.strip():
            raise HTTPException(status_code=400, detail="scope_id must not be blank")
        selector = (backend or settings.backend).strip().lower()
        _resolve_backend(selector)
        extractor = _resolve_ai(use_ai)
        if len(images) > settings.max_upload_images:
            raise HTTPException(
                status_code=400,
                detail=f"At most {settings.max_upload_images} images per upload",
            )

        saved: list[Path] = []
        try:
            for image in images:
                suffix = _upload_suffix(image)
                if suffix is None:
                    raise HTTPException(
                        status_code=400,
                        detail=f"Unsupported image type: {image.filename or image.content_type}",
                    )
                path = await _write_temp(image, suffix, settings.max_upload_bytes)
                if path is not None:
                    saved.append(path)
        except HTTPException:
            for path in saved:
                path.unlink(missing_ok=True)
            raise
        if not saved:
            raise HTTPException(status_code=400, detail="At least one non-empty image is required")

        upload_id = uuid4().hex
        job = store.create_job(
            upload_id=upload_id,
            scope_id=scope_id,
            backend=selector,
            image_count=len(saved),
            state=PENDING,
        )
        logger.info("Queued upload %s for scope %s (%d images)", upload_id, scope_id, len(saved))
        background_tasks.add_task(
            run_upload_job,
            store,
            upload_id,
            saved,
            scope_id,
            backend=selector,
            settings=settings,
            ai_extractor=extractor,
            backend_factory=backend_factory,
            cleanup_paths=list(saved),
        )
        return UploadAccepted(
            upload_id=job.upload_id,
            scope_id=job.scope_id,
            backend=job.backend,
            image_count=job.image_count,
            state=job.state,
        )

    @app.get("/uploads", response_model=list[UploadJobResponse])
    async def list_uploads(limit: int = 50, scope_id: str | None = None):
        return [job_to_response(job) for job in store.list_jobs(limit=limit, scope_id=scope_id)]

    def _fetch_job_or_404(upload_id: str) -> UploadJob:
        job = store.get_job(upload_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Upload not found")
        return job

    @app.get("/uploads/{upload_id}", response_model=UploadJobResponse)
    async def get_upload(upload_id: str):
        return job_to_response(_fetch_job_or_404(upload_id))

    @app.post("/uploads/{upload_id}/cancel", response_model=UploadJobResponse)
    async def cancel_upload(upload_id: str):
        job = _fetch_job_or_404(upload_id)
        if job.finished:
            return job_to_response(job)
        updated = store.mark_job_cancel_requested(upload_id, message="Cancellation requested")
        return job_to_response(updated)

    @app.get("/scopes/{scope_id}/players", response_model=ScopePlayersResponse)
    async def list_players(scope_id: str):
        players = [player_to_response(player) for player in store.list_players(scope_id)]
        return ScopePlayersResponse(scope_id=scope_id, players=players)

    return app
