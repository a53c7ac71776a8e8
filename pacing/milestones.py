"""Relationship milestone state machine.

The sequencer is stateless: the current index and completed list live in
the story state, are read on every evaluation, and the next state is
returned to the caller instead of being written anywhere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .tracker import contains_any

if TYPE_CHECKING:
    from story.state import StoryState

logger = logging.getLogger(__name__)

DEFAULT_TARGET_RATIO = 0.8


@dataclass(frozen=True)
class RequiredElement:
    tag: str
    description: str
    cues: tuple[str, ...] = ()


REQUIRED_ELEMENTS: dict[str, RequiredElement] = {
    element.tag: element
    for element in (
        RequiredElement("encounter", "the leads meet", ("만났", "마주쳤", "처음", "첫")),
        RequiredElement(
            "first_impression",
            "a first impression or feeling is described",
            ("호기심", "관심", "궁금", "느낌", "인상", "감정", "생각", "마음"),
        ),
        RequiredElement("interaction", "repeated interaction", ("대화", "말", "이야기", "함께")),
        RequiredElement("curiosity", "interest or curiosity about each other", ("관심", "궁금", "호기심")),
        RequiredElement("understanding", "understanding of each other", ("이해", "알게", "알았", "깨달")),
        RequiredElement("trust", "trustworthy behaviour", ("믿", "신뢰", "의지", "도움")),
        RequiredElement(
            "personal_disclosure",
            "sharing personal information",
            ("과거", "비밀", "털어놓", "고백"),
        ),
        RequiredElement(
            "emotional_recognition",
            "recognising a special feeling",
            ("느낌", "감정", "마음", "설레", "두근"),
        ),
        RequiredElement(
            "growing_attention",
            "growing attention towards the other",
            ("관심", "신경", "눈길", "자꾸"),
        ),
        RequiredElement("conflict", "a significant conflict or misunderstanding", ("갈등", "오해", "문제", "위기")),
        RequiredElement("resolution", "the conflict being resolved", ("해결", "화해", "용서", "풀렸")),
        RequiredElement("conviction", "certainty about each other", ("확신", "진심", "믿")),
        RequiredElement("promise", "a promise about the future", ("약속", "미래", "평생")),
    )
}


@dataclass(frozen=True)
class Milestone:
    name: str
    requirement: str
    minimum_chapters: int
    required_elements: tuple[str, ...]
    allowed_emotions: tuple[str, ...] = ()

    def element_hints(self) -> list[str]:
        return [describe_element(tag) for tag in self.required_elements]


MILESTONES: tuple[Milestone, ...] = (
    Milestone(
        "first_encounter",
        "first meeting and first impressions",
        1,
        ("encounter", "first_impression"),
        ("curiosity", "wariness", "surprise", "indifference"),
    ),
    Milestone(
        "repeated_interactions",
        "repeated meetings and gradual interest",
        2,
        ("interaction", "curiosity"),
        ("interest", "concern", "confusion", "amusement"),
    ),
    Milestone(
        "trust_building",
        "a relationship of trust forms",
        3,
        ("understanding", "trust", "personal_disclosure"),
        ("trust", "respect", "fondness", "protectiveness"),
    ),
    Milestone(
        "emotional_awareness",
        "awareness of feelings",
        2,
        ("emotional_recognition", "growing_attention"),
        ("attraction", "longing", "confusion_about_feelings"),
    ),
    Milestone(
        "conflict_and_resolution",
        "conflict and its resolution",
        2,
        ("conflict", "resolution"),
        ("pain", "regret", "determination", "relief"),
    ),
    Milestone(
        "commitment",
        "the relationship is confirmed",
        1,
        ("conviction", "promise"),
        ("love", "devotion", "happiness", "security"),
    ),
)


def describe_element(tag: str) -> str:
    element = REQUIRED_ELEMENTS.get(tag)
    return element.description if element else tag


def element_satisfied(tag: str, text: str) -> bool:
    """Unknown tags resolve to no cues and never match."""
    element = REQUIRED_ELEMENTS.get(tag)
    if element is None:
        return False
    return contains_any(text, element.cues)


@dataclass(frozen=True)
class MilestoneProgress:
    current_index: int = 0
    completed_milestones: tuple[str, ...] = ()


@dataclass
class MilestoneStatus:
    completed: bool
    can_progress: bool
    reason: str = ""
    suggestion: str = ""
    milestone: str = ""

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "completed": self.completed,
            "can_progress": self.can_progress,
            "milestone": self.milestone,
        }
        if self.reason:
            payload["reason"] = self.reason
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        return payload


@dataclass
class MilestoneEvaluation:
    status: MilestoneStatus
    progress: MilestoneProgress = field(default_factory=MilestoneProgress)


class MilestoneSequencer:
    """Gate advancement through the fixed milestone sequence."""

    def __init__(self, config: dict | None = None, milestones: tuple[Milestone, ...] = MILESTONES):
        cfg = (config or {}).get("pacing", {})
        self._target_ratio = float(cfg.get("milestone_target_ratio", DEFAULT_TARGET_RATIO))
        self._milestones = milestones

    @property
    def milestones(self) -> tuple[Milestone, ...]:
        return self._milestones

    def current(self, index: int) -> Milestone | None:
        if 0 <= index < len(self._milestones):
            return self._milestones[index]
        return None

    def evaluate(self, story: StoryState, chapter_text: str) -> MilestoneEvaluation:
        """Evaluate the current milestone only; never looks ahead or behind."""
        advanced = story.advanced_progress
        state = MilestoneProgress(
            current_index=min(advanced.current_milestone_index, len(self._milestones)),
            completed_milestones=tuple(advanced.completed_milestones),
        )

        milestone = self.current(state.current_index)
        if milestone is None:
            return MilestoneEvaluation(
                status=MilestoneStatus(completed=True, can_progress=True, milestone="complete"),
                progress=state,
            )

        chapter_count = len(story.chapters)
        if chapter_count < milestone.minimum_chapters:
            reason = (
                f"{milestone.name} needs at least {milestone.minimum_chapters} chapters "
                f"(story has {chapter_count})"
            )
            logger.debug("Milestone hold: %s", reason)
            return MilestoneEvaluation(
                status=MilestoneStatus(
                    completed=False,
                    can_progress=False,
                    reason=reason,
                    milestone=milestone.name,
                ),
                progress=state,
            )

        summaries = [chapter.summary or "" for chapter in story.chapters]
        summaries.append(chapter_text if isinstance(chapter_text, str) else "")
        all_content = " ".join(summaries)

        missing = [tag for tag in milestone.required_elements if not element_satisfied(tag, all_content)]
        if not missing:
            logger.info("Milestone completed: %s", milestone.name)
            return MilestoneEvaluation(
                status=MilestoneStatus(completed=True, can_progress=True, milestone=milestone.name),
                progress=MilestoneProgress(
                    current_index=state.current_index + 1,
                    completed_milestones=state.completed_milestones + (milestone.name,),
                ),
            )

        hints = ", ".join(describe_element(tag) for tag in missing)
        return MilestoneEvaluation(
            status=MilestoneStatus(
                completed=False,
                can_progress=True,
                suggestion=f"Include the following for {milestone.name}: {hints}",
                milestone=milestone.name,
            ),
            progress=state,
        )

    def can_progress_to_next(self, overall_progress: float, current_index: int) -> bool:
        """Advisory: is overall progress near the target implied by the index?"""
        if self.current(current_index) is None:
            return True
        required = current_index / len(self._milestones) * 100
        return overall_progress >= required * self._target_ratio
