"""Chapter-number based stage plan for a 75-chapter romance.

Gives the generator a brief for the upcoming chapter: which stage the story
is in, what romance level to aim for, tension and tone, and which subplots
to bring in. Chapters outside the plan get a ``reason`` instead of a stage.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable


@dataclass(frozen=True)
class RomanceStage:
    name: str
    first_chapter: int
    last_chapter: int
    level_start: int
    level_end: int
    description: str
    key_elements: tuple[str, ...]
    subplots: tuple[str, ...]
    tones: tuple[str, ...]


STAGES: tuple[RomanceStage, ...] = (
    RomanceStage(
        "introduction", 1, 15, 0, 15,
        "first meeting and early conflict",
        ("적대감", "호기심", "미묘한 끌림"),
        ("세계관 소개", "주인공 배경"),
        ("호기심", "긴장", "미스터리", "설렘"),
    ),
    RomanceStage(
        "development", 16, 35, 15, 40,
        "deepening feelings and conflict",
        ("신뢰 구축", "감정 인식", "내적 갈등"),
        ("외부 위협", "과거의 비밀", "라이벌 등장"),
        ("따뜻함", "혼란", "기대", "두려움"),
    ),
    RomanceStage(
        "climax", 36, 55, 40, 70,
        "turning point and crisis of the relationship",
        ("고백", "오해", "이별"),
        ("최대 위협", "비밀 폭로", "선택의 순간"),
        ("열정", "절망", "갈등", "아픔"),
    ),
    RomanceStage(
        "resolution", 56, 75, 70, 100,
        "reconciliation and happy ending",
        ("진실 발견", "재회", "영원한 사랑"),
        ("최종 시련", "모든 갈등 해결"),
        ("희망", "기쁨", "안도", "사랑"),
    ),
)

SUBPLOT_TEMPLATES = {
    "power-struggle": ("권력 계승 문제", "정치적 음모", "가문 간 대립", "왕위 쟁탈전"),
    "bodyguard-romance": ("암살 위협", "신뢰와 의무의 갈등", "보호자의 딜레마", "숨겨진 정체"),
    "enemies-to-lovers": ("과거의 원한", "가족 간 복수", "오해의 연쇄", "공동의 적"),
}

PEAK_CHAPTERS = frozenset({15, 35, 50, 55, 70})

ADJUSTMENT_THRESHOLD = 10

SLOW_DOWN_SUGGESTIONS = (
    "Add conflict or a misunderstanding",
    "Give more room to a subplot",
    "Express feelings indirectly",
    "Introduce an external obstacle",
)

SPEED_UP_SUGGESTIONS = (
    "Add an emotional moment",
    "Increase physical closeness",
    "Reveal feelings through inner monologue",
    "Set up a romantic situation",
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def stage_for_chapter(chapter_number: int) -> RomanceStage | None:
    for stage in STAGES:
        if stage.first_chapter <= chapter_number <= stage.last_chapter:
            return stage
    return None


def target_level(chapter_number: int) -> int | None:
    """Interpolated romance level for a chapter, or None outside the plan."""
    stage = stage_for_chapter(chapter_number)
    if stage is None:
        return None
    span = stage.last_chapter - stage.first_chapter + 1
    stage_progress = (chapter_number - stage.first_chapter) / span
    return _round_half_up(stage.level_start + (stage.level_end - stage.level_start) * stage_progress)


@dataclass
class PacingAdjustment:
    needed: bool
    direction: str  # "slow_down" | "speed_up"
    intensity: float
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "needed": self.needed,
            "direction": self.direction,
            "intensity": self.intensity,
            "suggestions": list(self.suggestions),
        }


def suggest_pacing_adjustment(chapter_number: int, current_level: float) -> PacingAdjustment | None:
    target = target_level(chapter_number)
    if target is None:
        return None
    difference = current_level - target
    direction = "slow_down" if difference > 0 else "speed_up"
    suggestions = SLOW_DOWN_SUGGESTIONS if direction == "slow_down" else SPEED_UP_SUGGESTIONS
    return PacingAdjustment(
        needed=abs(difference) > ADJUSTMENT_THRESHOLD,
        direction=direction,
        intensity=abs(difference),
        suggestions=list(suggestions),
    )


def subplot_timing(chapter_number: int) -> str:
    """A new subplot every five chapters: introduce, develop x3, resolve."""
    position = chapter_number % 5
    if position == 1:
        return "introduce"
    if 2 <= position <= 4:
        return "develop"
    return "resolve"


def tension_level(chapter_number: int) -> int:
    """Ten-chapter waves of rising and releasing tension, trending upward."""
    cycle = (chapter_number - 1) // 10
    position = (chapter_number - 1) % 10

    tension = 30 + cycle * 10
    if position < 7:
        tension += position * 5
    else:
        tension -= (position - 7) * 10

    if chapter_number in PEAK_CHAPTERS:
        tension = 90
    return max(20, min(100, tension))


def emotional_tone(chapter_number: int) -> str:
    stage = stage_for_chapter(chapter_number)
    if stage is None:
        return "neutral"
    return stage.tones[(chapter_number - 1) % len(stage.tones)]


def recommend_subplots(
    chapter_number: int,
    tropes: Iterable[str] = (),
    used_subplots: Iterable[str] = (),
    limit: int = 3,
) -> list[str]:
    stage = stage_for_chapter(chapter_number)
    candidates: list[str] = []
    for trope in tropes:
        candidates.extend(SUBPLOT_TEMPLATES.get(trope, ()))
    if stage is not None:
        candidates.extend(stage.subplots)

    used = set(used_subplots)
    fresh: list[str] = []
    for subplot in candidates:
        if subplot not in used and subplot not in fresh:
            fresh.append(subplot)
    return fresh[:limit]


@dataclass
class ChapterGuideline:
    chapter_number: int
    stage: str = ""
    description: str = ""
    target_level: int | None = None
    key_elements: list[str] = field(default_factory=list)
    subplots: list[str] = field(default_factory=list)
    subplot_timing: str = ""
    tension_level: int | None = None
    emotional_tone: str = ""
    pacing_adjustment: PacingAdjustment | None = None
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "chapter_number": self.chapter_number,
            "stage": self.stage,
            "description": self.description,
            "target_level": self.target_level,
            "key_elements": list(self.key_elements),
            "subplots": list(self.subplots),
            "subplot_timing": self.subplot_timing,
            "tension_level": self.tension_level,
            "emotional_tone": self.emotional_tone,
        }
        if self.pacing_adjustment is not None:
            payload["pacing_adjustment"] = self.pacing_adjustment.to_dict()
        if self.reason:
            payload["reason"] = self.reason
        return payload


def build_chapter_guideline(
    chapter_number: int,
    romance_level: float | None = None,
    tropes: Iterable[str] = (),
    used_subplots: Iterable[str] = (),
) -> ChapterGuideline:
    stage = stage_for_chapter(chapter_number)
    if stage is None:
        first, last = STAGES[0].first_chapter, STAGES[-1].last_chapter
        return ChapterGuideline(
            chapter_number=chapter_number,
            reason=f"chapter {chapter_number} is outside the {first}-{last} chapter plan",
        )

    guideline = ChapterGuideline(
        chapter_number=chapter_number,
        stage=stage.name,
        description=stage.description,
        target_level=target_level(chapter_number),
        key_elements=list(stage.key_elements),
        subplots=recommend_subplots(chapter_number, tropes, used_subplots),
        subplot_timing=subplot_timing(chapter_number),
        tension_level=tension_level(chapter_number),
        emotional_tone=emotional_tone(chapter_number),
    )

    if romance_level:
        adjustment = suggest_pacing_adjustment(chapter_number, romance_level)
        if adjustment is not None and adjustment.needed:
            guideline.pacing_adjustment = adjustment
    return guideline
