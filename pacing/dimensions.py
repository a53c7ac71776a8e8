"""Progress dimension records.

Each dimension keeps its own counters and derives ``progress`` from them,
so a record can never carry a progress value that disagrees with its
counters. Records are frozen; updates build new ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SOCIAL_STATUSES = ("stranger", "acquaintance", "friend", "interested", "couple")

SOCIAL_STATUS_PROGRESS = {
    "stranger": 0,
    "acquaintance": 20,
    "friend": 40,
    "interested": 60,
    "couple": 100,
}


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def _count(data: dict[str, Any], key: str) -> int:
    try:
        return max(0, int(data.get(key, 0) or 0))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class PhysicalDimension:
    meetings: int = 0
    private_time: int = 0
    touches: int = 0

    @property
    def progress(self) -> float:
        return _clamp(self.meetings * 5 + self.private_time * 10 + self.touches * 15)

    def to_dict(self) -> dict[str, Any]:
        return {
            "meetings": self.meetings,
            "private_time": self.private_time,
            "touches": self.touches,
            "progress": self.progress,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PhysicalDimension:
        return cls(
            meetings=_count(data, "meetings"),
            private_time=_count(data, "private_time"),
            touches=_count(data, "touches"),
        )


@dataclass(frozen=True)
class EmotionalDimension:
    trust_level: int = 0  # 0-100, moves in steps of 5
    vulnerability_shared: int = 0

    @property
    def progress(self) -> float:
        return _clamp(self.trust_level * 0.5 + self.vulnerability_shared * 20)

    def to_dict(self) -> dict[str, Any]:
        return {
            "trust_level": self.trust_level,
            "vulnerability_shared": self.vulnerability_shared,
            "progress": self.progress,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EmotionalDimension:
        return cls(
            trust_level=min(100, _count(data, "trust_level")),
            vulnerability_shared=_count(data, "vulnerability_shared"),
        )


@dataclass(frozen=True)
class SocialDimension:
    public_interactions: int = 0
    status: str = "stranger"

    @property
    def progress(self) -> float:
        return SOCIAL_STATUS_PROGRESS.get(self.status, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "public_interactions": self.public_interactions,
            "status": self.status,
            "progress": self.progress,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SocialDimension:
        status = data.get("status", "stranger")
        if status not in SOCIAL_STATUSES:
            status = "stranger"
        return cls(
            public_interactions=_count(data, "public_interactions"),
            status=status,
        )


@dataclass(frozen=True)
class PlotDimension:
    shared_goals: int = 0
    shared_secrets: int = 0
    shared_dangers: int = 0

    @property
    def progress(self) -> float:
        return _clamp(
            self.shared_goals * 15 + self.shared_secrets * 20 + self.shared_dangers * 25
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "shared_goals": self.shared_goals,
            "shared_secrets": self.shared_secrets,
            "shared_dangers": self.shared_dangers,
            "progress": self.progress,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlotDimension:
        return cls(
            shared_goals=_count(data, "shared_goals"),
            shared_secrets=_count(data, "shared_secrets"),
            shared_dangers=_count(data, "shared_dangers"),
        )


@dataclass(frozen=True)
class ProgressDimensions:
    """The four independent relationship-progress dimensions."""

    physical: PhysicalDimension = field(default_factory=PhysicalDimension)
    emotional: EmotionalDimension = field(default_factory=EmotionalDimension)
    social: SocialDimension = field(default_factory=SocialDimension)
    plot: PlotDimension = field(default_factory=PlotDimension)

    def progresses(self) -> tuple[float, float, float, float]:
        return (
            self.physical.progress,
            self.emotional.progress,
            self.social.progress,
            self.plot.progress,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "physical": self.physical.to_dict(),
            "emotional": self.emotional.to_dict(),
            "social": self.social.to_dict(),
            "plot": self.plot.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ProgressDimensions:
        data = data or {}

        def _section(key: str) -> dict[str, Any]:
            value = data.get(key)
            return value if isinstance(value, dict) else {}

        return cls(
            physical=PhysicalDimension.from_dict(_section("physical")),
            emotional=EmotionalDimension.from_dict(_section("emotional")),
            social=SocialDimension.from_dict(_section("social")),
            plot=PlotDimension.from_dict(_section("plot")),
        )


@dataclass(frozen=True)
class AdvancedProgress:
    """The pacing subtree of a story state, committed as one unit."""

    dimensions: ProgressDimensions = field(default_factory=ProgressDimensions)
    overall_progress: float = 0.0
    current_milestone_index: int = 0
    completed_milestones: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "dimensions": self.dimensions.to_dict(),
            "overall_progress": self.overall_progress,
            "current_milestone_index": self.current_milestone_index,
            "completed_milestones": list(self.completed_milestones),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AdvancedProgress:
        data = data or {}
        dimensions = ProgressDimensions.from_dict(data.get("dimensions"))
        completed = data.get("completed_milestones") or []
        return cls(
            dimensions=dimensions,
            overall_progress=float(_clamp(float(data.get("overall_progress", 0) or 0))),
            current_milestone_index=_count(data, "current_milestone_index"),
            completed_milestones=tuple(str(name) for name in completed),
        )
