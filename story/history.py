"""Append-only history of pacing evaluations (SQLite)."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

from pacing.engine import PacingResult

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS evaluations (
    id TEXT PRIMARY KEY,
    story_id TEXT,
    chapter_number INTEGER,
    valid INTEGER,
    overall_progress REAL,
    milestone TEXT,
    milestone_completed INTEGER,
    violations TEXT,          -- JSON list
    suggestions TEXT,         -- JSON list
    created_at TEXT
);
"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class EvaluationHistory:
    """Record every validation attempt, accepted or rejected."""

    def __init__(self, db_path: str | Path):
        self._path = Path(db_path)
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self._path))
        await self._db.executescript(_SCHEMA)
        await self._db.commit()
        logger.debug("History DB ready at %s", self._path)

    async def close(self) -> None:
        if self._db:
            await self._db.close()

    async def __aenter__(self) -> EvaluationHistory:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def log_evaluation(
        self,
        story_id: str,
        chapter_number: int,
        result: PacingResult,
    ) -> str:
        row_id = str(uuid.uuid4())
        status = result.milestone_status
        await self._db.execute(
            "INSERT INTO evaluations (id, story_id, chapter_number, valid, overall_progress, milestone, "
            "milestone_completed, violations, suggestions, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                row_id,
                story_id,
                chapter_number,
                int(result.valid),
                result.overall_progress,
                status.milestone if status else "",
                int(bool(status and status.completed)),
                json.dumps([v.to_dict() for v in result.violations], ensure_ascii=False),
                json.dumps(result.suggestions, ensure_ascii=False),
                _now_iso(),
            ),
        )
        await self._db.commit()
        return row_id

    async def get_recent_evaluations(self, limit: int = 10, story_id: str = "") -> list[dict]:
        query = "SELECT * FROM evaluations"
        params: list[Any] = []
        if story_id:
            query += " WHERE story_id = ?"
            params.append(story_id)
        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        cursor = await self._db.execute(query, tuple(params))
        cols = [d[0] for d in cursor.description]
        rows = await cursor.fetchall()
        return [dict(zip(cols, row)) for row in rows]

    async def get_rejection_count(self, story_id: str, chapter_number: int) -> int:
        """How many attempts at this chapter were rejected so far."""
        cursor = await self._db.execute(
            "SELECT COUNT(*) FROM evaluations WHERE story_id = ? AND chapter_number = ? AND valid = 0",
            (story_id, chapter_number),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0
