from __future__ import annotations

from pydantic import BaseModel


class PlayerResponse(BaseModel):
    record_id: int | None = None
    first_name: str
    last_name: str
    suffix: str | None = None
    position: str
    jersey_number: int
    overall_rating: int
    attributes: dict[str, int]
    class_year: str | None = None
    redshirt: bool = False
    height: str | None = None
    weight: int | None = None
    dev_trait: str | None = None


class ScopePlayersResponse(BaseModel):
    scope_id: str
    players: list[PlayerResponse]
