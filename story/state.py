"""Story state persistence.

StoryState = the record the pacing engine reads and commits into
(JSON file, loaded before each chapter and saved after an accepted one).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pacing.dimensions import AdvancedProgress

logger = logging.getLogger(__name__)

_KNOWN_KEYS = {
    "story_id",
    "title",
    "tropes",
    "used_subplots",
    "chapters",
    "advanced_progress",
    "updated_at",
}


class StateFileError(Exception):
    """Raised when a story state file cannot be parsed."""


@dataclass
class ChapterRecord:
    number: int
    title: str = ""
    summary: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChapterRecord:
        return cls(
            number=int(data.get("number", 0) or 0),
            title=str(data.get("title", "") or ""),
            summary=str(data.get("summary", "") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"number": self.number, "title": self.title, "summary": self.summary}


@dataclass
class StoryState:
    """A story's running state, serialized to JSON between chapters."""

    story_id: str = ""
    title: str = ""
    tropes: list[str] = field(default_factory=list)
    used_subplots: list[str] = field(default_factory=list)

    # Append-only
    chapters: list[ChapterRecord] = field(default_factory=list)

    # Pacing subtree, replaced as one unit by the engine
    advanced_progress: AdvancedProgress = field(default_factory=AdvancedProgress)

    updated_at: str = ""

    # Fields owned by other tools, preserved verbatim
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def next_chapter_number(self) -> int:
        if not self.chapters:
            return 1
        return max(ch.number for ch in self.chapters) + 1

    def append_chapter(self, title: str = "", summary: str = "") -> ChapterRecord:
        record = ChapterRecord(number=self.next_chapter_number, title=title, summary=summary)
        self.chapters.append(record)
        return record

    def to_dict(self) -> dict[str, Any]:
        payload = dict(self.extra)
        payload.update(
            {
                "story_id": self.story_id,
                "title": self.title,
                "tropes": list(self.tropes),
                "used_subplots": list(self.used_subplots),
                "chapters": [ch.to_dict() for ch in self.chapters],
                "advanced_progress": self.advanced_progress.to_dict(),
                "updated_at": self.updated_at,
            }
        )
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StoryState:
        return cls(
            story_id=str(data.get("story_id", "") or ""),
            title=str(data.get("title", "") or ""),
            tropes=list(data.get("tropes") or []),
            used_subplots=list(data.get("used_subplots") or []),
            chapters=[ChapterRecord.from_dict(ch) for ch in data.get("chapters") or [] if isinstance(ch, dict)],
            advanced_progress=AdvancedProgress.from_dict(data.get("advanced_progress")),
            updated_at=str(data.get("updated_at", "") or ""),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StoryStateStore:
    """Load / save StoryState to a JSON file."""

    def __init__(self, state_path: str | Path):
        self._path = Path(state_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StoryState:
        if self._path.exists():
            try:
                raw = json.loads(self._path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise StateFileError(f"Invalid JSON in {self._path}: {e}") from e
            if not isinstance(raw, dict):
                raise StateFileError(f"Story state in {self._path} must be a JSON object")
            try:
                state = StoryState.from_dict(raw)
            except (TypeError, ValueError) as e:
                raise StateFileError(f"Malformed story state in {self._path}: {e}") from e
            logger.debug(
                "Loaded state: chapters=%d progress=%.1f",
                len(state.chapters),
                state.advanced_progress.overall_progress,
            )
            return state

        # First run: create initial state
        state = StoryState(story_id=self._path.stem)
        self.save(state)
        logger.info("Created initial state file at %s", self._path)
        return state

    def save(self, state: StoryState) -> None:
        state.updated_at = _now_iso()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(state.to_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.debug("Saved state to %s", self._path)
