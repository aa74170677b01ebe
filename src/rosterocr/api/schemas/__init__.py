"""Pydantic models for API I/O."""

from .player import PlayerResponse, ScopePlayersResponse
from .upload import UploadAccepted, UploadJobResponse

__all__ = [
    "PlayerResponse",
    "ScopePlayersResponse",
    "UploadAccepted",
    "UploadJobResponse",
]
