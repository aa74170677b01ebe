"""Persistence layer for upload jobs and reconciled roster players."""

from __future__ import annotations

import json
import os
import sqlite3
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from rosterocr.models import StoredPlayerRecord
from rosterocr.records.reconcile import ReconciliationResult


PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
REQUIRES_VALIDATION = "requires_validation"
FAILED = "failed"

TERMINAL_STATES = frozenset({COMPLETED, REQUIRES_VALIDATION, FAILED})


@dataclass
class UploadJob:
    upload_id: str
    state: str
    scope_id: str
    backend: str
    image_count: int
    created_at: datetime
    updated_at: datetime
    message: Optional[str]
    result: Optional[dict]
    cancel_requested_at: Optional[datetime]
    completed_at: Optional[datetime]

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES


class RosterStore:
    """Simple SQLite-backed store for upload jobs and players per scope."""

    def __init__(self, db_path: Path | str):
        self._use_uri = False
        env_db = os.getenv("ROSTEROCR_DB_PATH")
        if env_db:
            if env_db.startswith("file:"):
                self.db_path = env_db
                self._use_uri = True
            else:
                self.db_path = Path(env_db)
        elif isinstance(db_path, str) and db_path.startswith("file:"):
            self.db_path = db_path
            self._use_uri = True
        else:
            self.db_path = Path(db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.db_path)
            else:
                conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        except (sqlite3.OperationalError, OSError):
            fallback_dir = Path(tempfile.gettempdir()) / "rosterocr-runtime"
            fallback_dir.mkdir(parents=True, exist_ok=True)
            fallback = fallback_dir / "rosterocr.sqlite"
            conn = sqlite3.connect(fallback)
            self.db_path = fallback
            self._use_uri = False
            self._create_schema(conn)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            self._create_schema(conn)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS upload_jobs (
                id TEXT PRIMARY KEY,
                state TEXT NOT NULL,
                scope_id TEXT NOT NULL,
                backend TEXT NOT NULL,
                image_count INTEGER NOT NULL DEFAULT 0,
                message TEXT,
                result_json TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                cancel_requested_at TEXT,
                completed_at TEXT
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS players (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                scope_id TEXT NOT NULL,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                position TEXT NOT NULL,
                suffix TEXT,
                jersey_number INTEGER NOT NULL DEFAULT 0,
                overall_rating INTEGER NOT NULL DEFAULT 0,
                attributes_json TEXT NOT NULL,
                class_year TEXT,
                redshirt INTEGER NOT NULL DEFAULT 0,
                height TEXT,
                weight INTEGER,
                dev_trait TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS players_scope_idx ON players (scope_id)")
        conn.commit()

    def create_job(
        self,
        *,
        upload_id: str,
        scope_id: str,
        backend: str,
        image_count: int = 0,
        state: str = PENDING,
        message: Optional[str] = None,
    ) -> UploadJob:
        now_iso = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO upload_jobs (
                    id, state, scope_id, backend, image_count, message,
                    result_json, created_at, updated_at, cancel_requested_at, completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, NULL, ?, ?, NULL, ?)
                """,
                (
                    upload_id,
                    state,
                    scope_id,
                    backend,
                    image_count,
                    message,
                    now_iso,
                    now_iso,
                    now_iso if state in TERMINAL_STATES else None,
                ),
            )
            conn.commit()
        job = self.get_job(upload_id)
        if job is None:  # pragma: no cover
            raise KeyError(f"Job {upload_id} not found after insert")
        return job

    def update_job_state(
        self,
        upload_id: str,
        *,
        state: str,
        message: Optional[str] = None,
        result: Optional[dict] = None,
    ) -> UploadJob:
        now_iso = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            existing = conn.execute(
                "SELECT * FROM upload_jobs WHERE id = ?", (upload_id,)
            ).fetchone()
            if existing is None:
                raise KeyError(f"Job {upload_id} not found")
            if message is None:
                message = existing["message"]
            result_json = json.dumps(result) if result is not None else existing["result_json"]
            cancel_requested_at = existing["cancel_requested_at"]
            completed_at = now_iso if state in TERMINAL_STATES else existing["completed_at"]
            conn.execute(
                """
                UPDATE upload_jobs
                SET state = ?, message = ?, result_json = ?, updated_at = ?,
                    cancel_requested_at = ?, completed_at = ?
                WHERE id = ?
                """,
                (state, message, result_json, now_iso, cancel_requested_at, completed_at, upload_id),
            )
            conn.commit()
        job = self.get_job(upload_id)
        if job is None:  # pragma: no cover
            raise KeyError(f"Job {upload_id} not found after update")
        return job

    def mark_job_cancel_requested(
        self,
        upload_id: str,
        *,
        message: Optional[str] = None,
    ) -> UploadJob:
        """Record a cancellation request; the job keeps its current state."""

        now_iso = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE upload_jobs
                SET cancel_requested_at = COALESCE(cancel_requested_at, ?),
                    message = COALESCE(?, message), updated_at = ?
                WHERE id = ?
                """,
                (now_iso, message, now_iso, upload_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise KeyError(f"Job {upload_id} not found")
        job = self.get_job(upload_id)
        if job is None:  # pragma: no cover
            raise KeyError(f"Job {upload_id} not found after update")
        return job

    def is_cancel_requested(self, upload_id: str) -> bool:
        job = self.get_job(upload_id)
        return job is not None and job.cancel_requested_at is not None

    def get_job(self, upload_id: str) -> Optional[UploadJob]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM upload_jobs WHERE id = ?", (upload_id,)).fetchone()
            if row is None:
                return None
            return self._job_row_to_record(row)

    def list_jobs(self, limit: int = 50, *, scope_id: Optional[str] = None) -> List[UploadJob]:
        query = "SELECT * FROM upload_jobs"
        params: list[str | int] = []
        if scope_id:
            query += " WHERE scope_id = ?"
            params.append(scope_id)
        query += " ORDER BY datetime(created_at) DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        return [self._job_row_to_record(row) for row in rows]

    def fetch_scope_players(self, scope_id: str) -> List[StoredPlayerRecord]:
        """Snapshot of every stored player in *scope_id*, read with one query."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM players WHERE scope_id = ? ORDER BY id", (scope_id,)
            ).fetchall()
        return [self._row_to_player(row) for row in rows]

    def list_players(self, scope_id: str) -> List[StoredPlayerRecord]:
        players = self.fetch_scope_players(scope_id)
        return sorted(players, key=lambda player: (player.position, player.last_name, player.first_name))

    def apply_reconciliation(self, scope_id: str, result: ReconciliationResult) -> Tuple[int, int]:
        """Write inserts and updates for *scope_id* in a single transaction."""

        now_iso = datetime.now(timezone.utc).isoformat()
        conn = self._connect()
        try:
            with conn:
                for record in result.inserted:
                    conn.execute(
                        """
                        INSERT INTO players (
                            scope_id, first_name, last_name, position, suffix, jersey_number,
                            overall_rating, attributes_json, class_year, redshirt, height,
                            weight, dev_trait, created_at, updated_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            scope_id,
                            record.first_name,
                            record.last_name,
                            record.position,
                            record.suffix,
                            record.jersey_number,
                            record.overall_rating,
                            json.dumps(record.attributes),
                            record.class_year,
                            int(record.redshirt),
                            record.height,
                            record.weight,
                            record.dev_trait,
                            now_iso,
                            now_iso,
                        ),
                    )
                for player in result.updated:
                    if player.record_id is None:
                        raise KeyError(f"Updated player {player.key} has no record id")
                    conn.execute(
                        """
                        UPDATE players
                        SET suffix = ?, jersey_number = ?, overall_rating = ?, attributes_json = ?,
                            class_year = ?, redshirt = ?, height = ?, weight = ?, dev_trait = ?,
                            updated_at = ?
                        WHERE id = ? AND scope_id = ?
                        """,
                        (
                            player.suffix,
                            player.jersey_number,
                            player.overall_rating,
                            json.dumps(player.attributes),
                            player.class_year,
                            int(player.redshirt),
                            player.height,
                            player.weight,
                            player.dev_trait,
                            now_iso,
                            player.record_id,
                            scope_id,
                        ),
                    )
        finally:
            conn.close()
        return result.inserted_count, result.updated_count

    def _row_to_player(self, row: sqlite3.Row) -> StoredPlayerRecord:
        return StoredPlayerRecord(
            record_id=row["id"],
            scope_id=row["scope_id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            position=row["position"],
            suffix=row["suffix"],
            jersey_number=row["jersey_number"],
            overall_rating=row["overall_rating"],
            attributes=json.loads(row["attributes_json"]),
            class_year=row["class_year"],
            redshirt=bool(row["redshirt"]),
            height=row["height"],
            weight=row["weight"],
            dev_trait=row["dev_trait"],
        )

    def _job_row_to_record(self, row: sqlite3.Row) -> UploadJob:
        def _parse_ts(value: Optional[str]) -> Optional[datetime]:
            return datetime.fromisoformat(value) if value else None

        return UploadJob(
            upload_id=row["id"],
            state=row["state"],
            scope_id=row["scope_id"],
            backend=row["backend"],
            image_count=row["image_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            message=row["message"],
            result=json.loads(row["result_json"]) if row["result_json"] else None,
            cancel_requested_at=_parse_ts(row["cancel_requested_at"]),
            completed_at=_parse_ts(row["completed_at"]),
        )
