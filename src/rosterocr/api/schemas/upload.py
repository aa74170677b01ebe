from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class UploadAccepted(BaseModel):
    upload_id: str
    scope_id: str
    backend: str
    image_count: int
    state: str


class UploadJobResponse(BaseModel):
    upload_id: str
    state: str
    scope_id: str
    backend: str
    image_count: int
    message: str | None = None
    result: dict | None = None
    created_at: datetime
    updated_at: datetime
    cancel_requested_at: datetime | None = None
    completed_at: datetime | None = None
