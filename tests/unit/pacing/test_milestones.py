"""Tests for the milestone state machine."""

from pacing.dimensions import AdvancedProgress
from pacing.milestones import MILESTONES, MilestoneProgress, MilestoneSequencer, element_satisfied
from story.state import ChapterRecord, StoryState


def _story(chapters: int = 0, index: int = 0, summaries: list[str] | None = None) -> StoryState:
    summaries = summaries or []
    records = [
        ChapterRecord(number=i + 1, summary=summaries[i] if i < len(summaries) else "")
        for i in range(chapters)
    ]
    completed = tuple(m.name for m in MILESTONES[:index])
    return StoryState(
        story_id="test",
        chapters=records,
        advanced_progress=AdvancedProgress(current_milestone_index=index, completed_milestones=completed),
    )


ENCOUNTER_TEXT = "그날 두 사람은 처음 만났다. 묘한 호기심이 들었다."


def test_chapter_count_below_minimum_holds():
    sequencer = MilestoneSequencer()
    story = _story(chapters=2, index=2)  # trust_building needs 3 chapters
    evaluation = sequencer.evaluate(story, "서로를 이해하게 되었고, 그를 믿었다. 과거를 털어놓았다.")
    assert evaluation.status.completed is False
    assert evaluation.status.can_progress is False
    assert "trust_building" in evaluation.status.reason
    assert evaluation.progress.current_index == 2


def test_empty_story_cannot_complete_first_milestone():
    evaluation = MilestoneSequencer().evaluate(_story(chapters=0), ENCOUNTER_TEXT)
    assert evaluation.status.can_progress is False


def test_all_required_elements_complete_milestone():
    evaluation = MilestoneSequencer().evaluate(_story(chapters=1), ENCOUNTER_TEXT)
    assert evaluation.status.completed is True
    assert evaluation.status.can_progress is True
    assert evaluation.progress == MilestoneProgress(1, ("first_encounter",))


def test_missing_element_is_soft_gate():
    # Meeting but no impression cue
    evaluation = MilestoneSequencer().evaluate(_story(chapters=1), "그날 두 사람은 처음 만났다.")
    assert evaluation.status.completed is False
    assert evaluation.status.can_progress is True
    assert "first impression" in evaluation.status.suggestion
    assert "the leads meet" not in evaluation.status.suggestion
    assert evaluation.progress.current_index == 0


def test_prior_summaries_count_towards_elements():
    story = _story(chapters=1, summaries=["그녀는 시장에서 그와 처음 만났다."])
    evaluation = MilestoneSequencer().evaluate(story, "그녀는 그에게 묘한 호기심을 느꼈다.")
    assert evaluation.status.completed is True


def test_advances_exactly_one_step():
    # Text satisfies several later milestones as well
    text = ENCOUNTER_TEXT + " 대화를 나누었다. 약속했다. 확신했다. 갈등이 해결되었다."
    evaluation = MilestoneSequencer().evaluate(_story(chapters=5), text)
    assert evaluation.progress.current_index == 1


def test_evaluate_does_not_mutate_story():
    story = _story(chapters=1)
    before = story.advanced_progress
    MilestoneSequencer().evaluate(story, ENCOUNTER_TEXT)
    assert story.advanced_progress is before
    assert story.advanced_progress.current_milestone_index == 0


def test_terminal_state_is_idempotent():
    sequencer = MilestoneSequencer()
    story = _story(chapters=10, index=len(MILESTONES))
    for _ in range(3):
        evaluation = sequencer.evaluate(story, "")
        assert evaluation.status.completed is True
        assert evaluation.status.can_progress is True
        assert evaluation.progress.current_index == len(MILESTONES)
        assert len(evaluation.progress.completed_milestones) == len(MILESTONES)


def test_unknown_element_never_matches():
    assert element_satisfied("telepathy", "무엇이든") is False
    assert element_satisfied("encounter", "처음 만났다") is True


class TestCanProgressToNext:
    def test_first_milestone_has_no_target(self):
        assert MilestoneSequencer().can_progress_to_next(0, 0) is True

    def test_needs_eighty_percent_of_proportional_target(self):
        sequencer = MilestoneSequencer()
        # index 3 of 6 -> target 50, 80% of it = 40
        assert sequencer.can_progress_to_next(40, 3) is True
        assert sequencer.can_progress_to_next(39.9, 3) is False

    def test_past_the_end_is_always_true(self):
        assert MilestoneSequencer().can_progress_to_next(0, len(MILESTONES)) is True

    def test_ratio_is_configurable(self):
        sequencer = MilestoneSequencer({"pacing": {"milestone_target_ratio": 0.5}})
        assert sequencer.can_progress_to_next(25, 3) is True
