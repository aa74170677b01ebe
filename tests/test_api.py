import cv2
import numpy as np
import pytest
from httpx import ASGITransport, AsyncClient

from rosterocr.api import create_app
from rosterocr.config_loader import BACKEND_SELECTORS, PipelineSettings


ROSTER_TEXT = """NAME POS OVR SPD
55 DT Jake Kilgore 82 70
12 WR Tom Thompson 75 88
"""


class StaticBackend:
    name = "local-engine"

    def __init__(self, text=ROSTER_TEXT):
        self.text = text

    def extract(self, image_path):
        return self.text


def _factory(selector, settings):
    if selector not in BACKEND_SELECTORS:
        raise KeyError(selector)
    return StaticBackend()


def _png_bytes() -> bytes:
    image = np.full((80, 240, 3), 255, dtype=np.uint8)
    cv2.putText(image, "55 DT Kilgore", (5, 45), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 0), 2)
    ok, encoded = cv2.imencode(".png", image)
    assert ok
    return encoded.tobytes()


@pytest.fixture
async def client(tmp_path, monkeypatch):
    monkeypatch.delenv("ROSTEROCR_DB_PATH", raising=False)
    app = create_app(
        db_path=tmp_path / "api.sqlite",
        settings=PipelineSettings(),
        backend_factory=_factory,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        async_client.app = app
        yield async_client


@pytest.mark.anyio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_upload_is_processed_and_players_listed(client):
    response = await client.post(
        "/scopes/dynasty-1/uploads",
        files=[("images", ("roster.png", _png_bytes(), "image/png"))],
    )
    assert response.status_code == 202
    accepted = response.json()
    assert accepted["scope_id"] == "dynasty-1"
    assert accepted["backend"] == "local-engine"
    assert accepted["image_count"] == 1

    job = (await client.get(f"/uploads/{accepted['upload_id']}")).json()
    assert job["state"] == "completed"
    assert job["result"] == {"status": "completed", "inserted_count": 2, "updated_count": 0}

    players = (await client.get("/scopes/dynasty-1/players")).json()
    assert players["scope_id"] == "dynasty-1"
    by_name = {player["last_name"]: player for player in players["players"]}
    assert set(by_name) == {"Kilgore", "Thompson"}
    assert by_name["Kilgore"]["attributes"] == {"OVR": 82, "SPD": 70}
    assert by_name["Thompson"]["jersey_number"] == 12

    uploads = (await client.get("/uploads", params={"scope_id": "dynasty-1"})).json()
    assert [upload["upload_id"] for upload in uploads] == [accepted["upload_id"]]


@pytest.mark.anyio
async def test_repeat_upload_reports_updates(client):
    files = [("images", ("roster.png", _png_bytes(), "image/png"))]
    await client.post("/scopes/dynasty-1/uploads", files=files)
    second = await client.post("/scopes/dynasty-1/uploads", files=files)
    job = (await client.get(f"/uploads/{second.json()['upload_id']}")).json()
    assert job["result"]["updated_count"] == 2
    assert len((await client.get("/scopes/dynasty-1/players")).json()["players"]) == 2


@pytest.mark.anyio
async def test_unknown_backend_is_rejected(client):
    response = await client.post(
        "/scopes/dynasty-1/uploads",
        data={"backend": "carrier-pigeon"},
        files=[("images", ("roster.png", _png_bytes(), "image/png"))],
    )
    assert response.status_code == 400
    assert "Unsupported backend" in response.json()["detail"]


@pytest.mark.anyio
async def test_unsupported_image_type_is_rejected(client):
    response = await client.post(
        "/scopes/dynasty-1/uploads",
        files=[("images", ("roster.gif", b"GIF89a", "image/gif"))],
    )
    assert response.status_code == 400
    assert (await client.get("/uploads")).json() == []


@pytest.mark.anyio
async def test_empty_images_are_rejected(client):
    response = await client.post(
        "/scopes/dynasty-1/uploads",
        files=[("images", ("roster.png", b"", "image/png"))],
    )
    assert response.status_code == 400


@pytest.mark.anyio
async def test_blank_scope_is_rejected(client):
    response = await client.post(
        "/scopes/%20/uploads",
        files=[("images", ("roster.png", _png_bytes(), "image/png"))],
    )
    assert response.status_code == 400


@pytest.mark.anyio
async def test_unknown_upload_returns_404(client):
    assert (await client.get("/uploads/missing")).status_code == 404
    assert (await client.post("/uploads/missing/cancel")).status_code == 404


@pytest.mark.anyio
async def test_cancel_pending_and_finished_uploads(client):
    store = client.app.state.roster_store
    store.create_job(upload_id="queued", scope_id="dynasty-1", backend="local-engine", image_count=1)

    response = await client.post("/uploads/queued/cancel")
    assert response.status_code == 200
    assert response.json()["state"] == "pending"
    assert response.json()["cancel_requested_at"] is not None

    store.update_job_state("queued", state="failed", message="Upload canceled")
    finished = (await client.post("/uploads/queued/cancel")).json()
    assert finished["state"] == "failed"
    assert finished["message"] == "Upload canceled"


@pytest.mark.anyio
async def test_unscoped_players_list_is_empty(client):
    response = await client.get("/scopes/nobody/players")
    assert response.status_code == 200
    assert response.json() == {"scope_id": "nobody", "players": []}


@pytest.fixture
async def limited_client(tmp_path, monkeypatch):
    monkeypatch.delenv("ROSTEROCR_DB_PATH", raising=False)
    app = create_app(
        db_path=tmp_path / "limited.sqlite",
        settings=PipelineSettings(max_upload_bytes=64, max_upload_images=2),
        backend_factory=_factory,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest.mark.anyio
async def test_oversized_image_is_rejected(limited_client):
    response = await limited_client.post(
        "/scopes/dynasty-1/uploads",
        files=[("images", ("roster.png", b"\x89PNG" + b"0" * 200, "image/png"))],
    )
    assert response.status_code == 413
    assert (await limited_client.get("/uploads")).json() == []


@pytest.mark.anyio
async def test_too_many_images_are_rejected(limited_client):
    files = [("images", (f"roster{i}.png", b"\x89PNG", "image/png")) for i in range(3)]
    response = await limited_client.post("/scopes/dynasty-1/uploads", files=files)
    assert response.status_code == 400
    assert "At most 2 images" in response.json()["detail"]
