"""Pacing engine - the gate every generated chapter passes through.

Each evaluation: track progress -> check constraints -> evaluate milestone
-> commit the new pacing state only if the chapter is accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .constraints import ConstraintChecker, TimeSkipLimit, Violation, keyword_band, time_skip_band
from .dimensions import AdvancedProgress, ProgressDimensions
from .milestones import MilestoneSequencer, MilestoneStatus
from .tracker import ProgressTracker

if TYPE_CHECKING:
    from story.state import StoryState

logger = logging.getLogger(__name__)


@dataclass
class PacingResult:
    valid: bool
    overall_progress: float
    dimensions: ProgressDimensions
    violations: list[Violation] = field(default_factory=list)
    milestone_status: MilestoneStatus | None = None
    suggestions: list[str] = field(default_factory=list)
    advisories: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "overall_progress": round(self.overall_progress, 2),
            "dimensions": self.dimensions.to_dict(),
            "violations": [v.to_dict() for v in self.violations],
            "milestone_status": self.milestone_status.to_dict() if self.milestone_status else None,
            "suggestions": list(self.suggestions),
            "advisories": list(self.advisories),
        }


@dataclass
class NextChapterConstraints:
    """What the generator is allowed to do in the next chapter."""

    progress: float
    band: str
    forbidden_terms: list[str]
    allowed_emotions: list[str]
    current_milestone: str
    required_elements: list[str]
    element_hints: list[str]
    time_limit: TimeSkipLimit

    def to_dict(self) -> dict[str, Any]:
        return {
            "progress": round(self.progress, 2),
            "band": self.band,
            "forbidden_terms": list(self.forbidden_terms),
            "allowed_emotions": list(self.allowed_emotions),
            "current_milestone": self.current_milestone,
            "required_elements": list(self.required_elements),
            "element_hints": list(self.element_hints),
            "time_limit": {"amount": self.time_limit.amount, "unit": self.time_limit.unit},
        }

    def render_prompt(self, base_prompt: str = "") -> str:
        """Append the pacing block to a generation prompt."""
        forbidden = ", ".join(self.forbidden_terms) or "(none)"
        emotions = ", ".join(self.allowed_emotions) or "(any)"
        goals = ", ".join(self.element_hints) or "(none)"
        block = (
            "=== Pacing constraints ===\n"
            f"Current progress: {self.progress:.1f}%\n"
            f"Current milestone: {self.current_milestone}\n"
            "\n"
            f"Allowed emotions: {emotions}\n"
            f"Forbidden expressions: {forbidden}\n"
            f"Time skip limit: {self.time_limit.describe()}\n"
            "\n"
            f"Chapter goals: {goals}\n"
            "\n"
            "Follow these constraints strictly. Let the relationship develop gradually;\n"
            "emotional change must stay subtle and believable."
        )
        base = (base_prompt or "").rstrip()
        return f"{base}\n\n{block}" if base else block


class PacingEngine:
    """Validate generated chapters against pacing rules."""

    def __init__(self, config: dict | None = None):
        self._tracker = ProgressTracker(config)
        self._checker = ConstraintChecker(config)
        self._sequencer = MilestoneSequencer(config)

    def current_progress(self, story: StoryState) -> float:
        """Overall progress derived from the stored dimensions.

        The persisted ``overall_progress`` is only a cache; a hand-edited
        state file can leave it out of step with the dimensions.
        """
        return self._tracker.overall(story.advanced_progress.dimensions)

    def validate_and_update(self, text: str, story: StoryState) -> PacingResult:
        """Validate a candidate chapter; commit pacing state only if it passes."""
        previous = story.advanced_progress
        previous_overall = self.current_progress(story)

        dimensions = self._tracker.update(text, previous.dimensions)
        overall = self._tracker.overall(dimensions)
        report = self._checker.check(text, overall)
        evaluation = self._sequencer.evaluate(story, text)
        status = evaluation.status

        valid = report.valid and status.can_progress

        suggestions = list(report.suggestions)
        if status.suggestion:
            suggestions.append(status.suggestion)
        if status.reason:
            suggestions.append(status.reason)

        advisories: list[str] = []
        if not self._sequencer.can_progress_to_next(overall, evaluation.progress.current_index):
            advisories.append(
                f"Overall progress {overall:.1f}% lags behind milestone "
                f"{evaluation.progress.current_index + 1}/{len(self._sequencer.milestones)}"
            )

        result = PacingResult(
            valid=valid,
            overall_progress=overall,
            dimensions=dimensions,
            violations=list(report.violations),
            milestone_status=status,
            suggestions=suggestions,
            advisories=advisories,
        )

        if not valid:
            logger.info(
                "Chapter rejected at %.1f%%: violations=%s hold=%s",
                overall,
                report.kinds(),
                not status.can_progress,
            )
            return result

        story.advanced_progress = AdvancedProgress(
            dimensions=dimensions,
            overall_progress=overall,
            current_milestone_index=evaluation.progress.current_index,
            completed_milestones=evaluation.progress.completed_milestones,
        )
        logger.info(
            "Chapter accepted: progress %.1f%% -> %.1f%%, milestone %d",
            previous_overall,
            overall,
            evaluation.progress.current_index,
        )
        return result

    def build_constraints_for_next(self, story: StoryState) -> NextChapterConstraints:
        """Derive the next attempt's constraints without touching the story."""
        advanced = story.advanced_progress
        progress = self.current_progress(story)
        band = keyword_band(progress)
        milestone = self._sequencer.current(advanced.current_milestone_index)

        return NextChapterConstraints(
            progress=progress,
            band=band.label,
            forbidden_terms=list(band.forbidden_terms),
            allowed_emotions=list(milestone.allowed_emotions) if milestone else [],
            current_milestone=milestone.name if milestone else "complete",
            required_elements=list(milestone.required_elements) if milestone else [],
            element_hints=milestone.element_hints() if milestone else [],
            time_limit=time_skip_band(progress).limit,
        )
