"""Progress-banded pacing constraints and the checker that applies them."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Sequence, TypeVar

from .tracker import contains_any

logger = logging.getLogger(__name__)


# ── Tables ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConstraintBand:
    lower: int
    upper: int
    forbidden_terms: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return f"{self.lower}-{self.upper}"

    def contains(self, value: float) -> bool:
        return self.lower <= value <= self.upper


@dataclass(frozen=True)
class TimeSkipLimit:
    amount: int
    unit: str = "day"  # hour | day | week | month | year

    @property
    def days(self) -> float:
        return self.amount * UNIT_DAYS.get(self.unit, 0)

    def describe(self) -> str:
        noun = self.unit if self.amount == 1 else f"{self.unit}s"
        return f"{self.amount} {noun}"


@dataclass(frozen=True)
class TimeSkipBand:
    lower: int
    upper: int
    limit: TimeSkipLimit

    @property
    def label(self) -> str:
        return f"{self.lower}-{self.upper}"

    def contains(self, value: float) -> bool:
        return self.lower <= value <= self.upper


KEYWORD_BANDS: tuple[ConstraintBand, ...] = (
    ConstraintBand(0, 15, ("결혼", "고백", "사랑한다", "키스", "연인", "사귀", "포옹", "임신", "이혼")),
    ConstraintBand(16, 35, ("결혼", "사랑한다", "키스", "연인", "사귀", "임신", "이혼")),
    ConstraintBand(36, 55, ("결혼", "사랑한다", "키스", "임신", "이혼")),
    ConstraintBand(56, 75, ("결혼", "임신", "이혼")),
    ConstraintBand(76, 90, ("임신", "이혼")),
    ConstraintBand(91, 100, ()),
)

TIME_SKIP_BANDS: tuple[TimeSkipBand, ...] = (
    TimeSkipBand(0, 25, TimeSkipLimit(1, "day")),
    TimeSkipBand(26, 50, TimeSkipLimit(3, "day")),
    TimeSkipBand(51, 75, TimeSkipLimit(1, "day")),
    TimeSkipBand(76, 100, TimeSkipLimit(7, "day")),
)

UNIT_DAYS = {
    "hour": 1 / 24,
    "day": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}

# Surface tokens in the chapter text -> canonical unit.
UNIT_TOKENS = {
    "시간": "hour",
    "일": "day",
    "주일": "week",
    "주": "week",
    "개월": "month",
    "달": "month",
    "년": "year",
}

_TIME_SKIP_RE = re.compile(r"(\d+)\s*(시간|개월|주일|년|달|주|일)\s*후")

STRONG_EMOTIONS = ("사랑", "열정", "갈망", "그리움", "절망")
MILD_EMOTIONS = ("관심", "호기심", "친근감", "신뢰")

DEFAULT_STRONG_EMOTION_GATE = 50.0

KINDS = ("keyword", "time", "emotion")

REMEDIATION = {
    "keyword": "Focus on dialogue and situation between the characters rather than relationship milestones.",
    "time": "Show the passage of time in smaller, gradual steps.",
    "emotion": "Express emotional change more subtly and indirectly.",
}

_Band = TypeVar("_Band", ConstraintBand, TimeSkipBand)


def find_band(bands: Sequence[_Band], progress: float) -> _Band:
    """Return the band for progress; bands are ordered and contiguous."""
    value = max(0.0, min(100.0, float(progress)))
    for band in bands:
        if value <= band.upper:
            return band
    return bands[-1]


def keyword_band(progress: float) -> ConstraintBand:
    return find_band(KEYWORD_BANDS, progress)


def time_skip_band(progress: float) -> TimeSkipBand:
    return find_band(TIME_SKIP_BANDS, progress)


# ── Checker ─────────────────────────────────────────────────────


@dataclass
class Violation:
    kind: str  # "keyword" | "time" | "emotion"
    message: str
    suggestion: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message, "suggestion": self.suggestion}


@dataclass
class ConstraintReport:
    violations: list[Violation] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.violations

    def kinds(self) -> list[str]:
        return [v.kind for v in self.violations]


def _fmt(progress: float) -> str:
    return f"{progress:.1f}"


def remediation_for(violations: Sequence[Violation]) -> list[str]:
    """One remediation sentence per violation kind present, in kind order."""
    present = {v.kind for v in violations}
    return [REMEDIATION[kind] for kind in KINDS if kind in present]


class ConstraintChecker:
    """Apply the banded constraint tables to a chapter."""

    def __init__(self, config: dict | None = None):
        cfg = (config or {}).get("pacing", {})
        self._emotion_gate = float(cfg.get("strong_emotion_gate", DEFAULT_STRONG_EMOTION_GATE))

    @property
    def emotion_gate(self) -> float:
        return self._emotion_gate

    def check(self, text: Any, overall_progress: float) -> ConstraintReport:
        if not isinstance(text, str) or not text:
            return ConstraintReport()
        try:
            progress = float(overall_progress)
        except (TypeError, ValueError):
            progress = 0.0

        violations: list[Violation] = []
        for check in (self.check_keywords, self.check_time_skips, self.check_emotion):
            violation = check(text, progress)
            if violation is not None:
                violations.append(violation)

        if violations:
            logger.debug("Constraint violations at %s%%: %s", _fmt(progress), [v.kind for v in violations])
        return ConstraintReport(violations=violations, suggestions=remediation_for(violations))

    def check_keywords(self, text: str, progress: float) -> Violation | None:
        band = keyword_band(progress)
        for term in band.forbidden_terms:
            if term in text:
                return Violation(
                    kind="keyword",
                    message=f'"{term}" is too early at {_fmt(progress)}% progress (band {band.label})',
                    suggestion="Keep this stage about situations and dialogue, not declarations.",
                )
        return None

    def check_time_skips(self, text: str, progress: float) -> Violation | None:
        band = time_skip_band(progress)
        for match in _TIME_SKIP_RE.finditer(text):
            amount = int(match.group(1))
            unit = UNIT_TOKENS[match.group(2)]
            if amount * UNIT_DAYS[unit] > band.limit.days:
                return Violation(
                    kind="time",
                    message=f'"{match.group(0)}" is too large a time skip at {_fmt(progress)}% progress',
                    suggestion=f"Limit time skips to {band.limit.describe()} at this stage.",
                )
        return None

    def check_emotion(self, text: str, progress: float) -> Violation | None:
        if progress >= self._emotion_gate:
            return None
        if not contains_any(text, STRONG_EMOTIONS):
            return None
        return Violation(
            kind="emotion",
            message=f"Strong emotional vocabulary is too early at {_fmt(progress)}% progress",
            suggestion=f"Stay with subtle feelings such as {', '.join(MILD_EMOTIONS)}.",
        )
