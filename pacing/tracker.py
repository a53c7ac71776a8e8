"""Turn chapter text into quantified relationship progress."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable, Sequence

from .dimensions import ProgressDimensions

logger = logging.getLogger(__name__)

TRUST_STEP = 5

# Cue groups: any literal hit bumps the counter once per chapter.
MEETING_CUES = ("만났", "마주쳤", "부딪혔", "만남", "처음", "첫")
PRIVATE_TIME_CUES = ("둘만", "혼자", "단둘이", "비밀스럽게", "은밀하게")
TOUCH_CUES = ("손", "어깨", "팔", "만졌", "잡았", "접촉", "스쳤")
TRUST_CUES = ("믿", "신뢰", "의지", "호기심", "관심", "궁금")
VULNERABILITY_CUES = ("과거", "비밀", "상처", "고백")
PUBLIC_INTERACTION_CUES = ("모든 사람", "공개적", "소문", "대화", "이야기")
SHARED_GOAL_CUES = ("함께", "협력", "동맹", "같이", "서로")
SHARED_SECRET_CUES = ("둘만의 비밀", "비밀을 나누", "비밀을 나눴", "비밀을 털어놓", "비밀을 지켜")
SHARED_DANGER_CUES = ("위험", "적", "죽음", "구했", "위기", "도움")

DEFAULT_MIN_CORROBORATING = 2
DEFAULT_SINGLE_DIMENSION_CREDIT = 0.5


def contains_any(text: Any, cues: Iterable[str]) -> bool:
    """True if any cue occurs in text as a literal substring."""
    if not isinstance(text, str) or not text:
        return False
    return any(cue and cue in text for cue in cues)


def fuse_progress(
    progresses: Sequence[float],
    min_corroborating: int = DEFAULT_MIN_CORROBORATING,
    single_dimension_credit: float = DEFAULT_SINGLE_DIMENSION_CREDIT,
) -> float:
    """Fuse per-dimension progress into one overall value.

    Corroborated progress (at least ``min_corroborating`` dimensions above
    zero) is the plain mean of every dimension, zeros included. A lone
    advancing dimension only earns ``single_dimension_credit`` of its value.
    """
    if not progresses:
        return 0.0
    nonzero = sum(1 for p in progresses if p > 0)
    if nonzero == 0:
        return 0.0
    if nonzero >= min_corroborating:
        overall = sum(progresses) / len(progresses)
    else:
        overall = max(progresses) * single_dimension_credit
    return float(max(0.0, min(100.0, overall)))


class ProgressTracker:
    """Update the four progress dimensions from a chapter's text."""

    def __init__(self, config: dict | None = None):
        cfg = (config or {}).get("pacing", {}).get("fusion", {})
        self._min_corroborating = int(cfg.get("min_corroborating", DEFAULT_MIN_CORROBORATING))
        self._single_credit = float(
            cfg.get("single_dimension_credit", DEFAULT_SINGLE_DIMENSION_CREDIT)
        )

    def update(self, text: str, previous: ProgressDimensions | None = None) -> ProgressDimensions:
        """Return new dimensions after scanning text. ``previous`` is never mutated."""
        prev = previous or ProgressDimensions()

        physical = prev.physical
        if contains_any(text, MEETING_CUES):
            physical = replace(physical, meetings=physical.meetings + 1)
        if contains_any(text, PRIVATE_TIME_CUES):
            physical = replace(physical, private_time=physical.private_time + 1)
        if contains_any(text, TOUCH_CUES):
            physical = replace(physical, touches=physical.touches + 1)

        emotional = prev.emotional
        if contains_any(text, TRUST_CUES):
            emotional = replace(emotional, trust_level=min(100, emotional.trust_level + TRUST_STEP))
        if contains_any(text, VULNERABILITY_CUES):
            emotional = replace(emotional, vulnerability_shared=emotional.vulnerability_shared + 1)

        social = prev.social
        if contains_any(text, PUBLIC_INTERACTION_CUES):
            social = replace(social, public_interactions=social.public_interactions + 1)

        plot = prev.plot
        if contains_any(text, SHARED_GOAL_CUES):
            plot = replace(plot, shared_goals=plot.shared_goals + 1)
        if contains_any(text, SHARED_SECRET_CUES):
            plot = replace(plot, shared_secrets=plot.shared_secrets + 1)
        if contains_any(text, SHARED_DANGER_CUES):
            plot = replace(plot, shared_dangers=plot.shared_dangers + 1)

        updated = ProgressDimensions(physical=physical, emotional=emotional, social=social, plot=plot)
        logger.debug("Dimension progress: %s", updated.progresses())
        return updated

    def overall(self, dimensions: ProgressDimensions) -> float:
        return fuse_progress(
            dimensions.progresses(),
            min_corroborating=self._min_corroborating,
            single_dimension_credit=self._single_credit,
        )
