"""Tests for story state persistence."""

import json
from pathlib import Path

import pytest

from pacing.dimensions import AdvancedProgress, PhysicalDimension, ProgressDimensions
from story.state import StateFileError, StoryState, StoryStateStore


def test_missing_file_creates_initial_state(tmp_path: Path):
    path = tmp_path / "stories" / "moonlit.json"
    state = StoryStateStore(path).load()
    assert state.story_id == "moonlit"
    assert state.chapters == []
    assert state.advanced_progress == AdvancedProgress()
    assert path.exists()


def test_save_and_load_roundtrip(tmp_path: Path):
    store = StoryStateStore(tmp_path / "state.json")
    state = StoryState(story_id="s1", title="달빛 계약", tropes=["enemies-to-lovers"])
    state.append_chapter(title="1화", summary="두 사람이 처음 만났다.")
    state.advanced_progress = AdvancedProgress(
        dimensions=ProgressDimensions(physical=PhysicalDimension(meetings=1)),
        overall_progress=2.5,
        current_milestone_index=1,
        completed_milestones=("first_encounter",),
    )
    store.save(state)

    loaded = store.load()
    assert loaded.title == "달빛 계약"
    assert loaded.chapters[0].summary == "두 사람이 처음 만났다."
    assert loaded.advanced_progress == state.advanced_progress
    assert loaded.updated_at


def test_unknown_fields_are_preserved(tmp_path: Path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"story_id": "s2", "metadata": {"genre": "romance"}}), encoding="utf-8")
    store = StoryStateStore(path)

    state = store.load()
    store.save(state)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["metadata"] == {"genre": "romance"}
    assert raw["story_id"] == "s2"


def test_next_chapter_number_follows_highest():
    state = StoryState()
    assert state.next_chapter_number == 1
    state.append_chapter()
    state.append_chapter()
    assert [ch.number for ch in state.chapters] == [1, 2]
    assert state.next_chapter_number == 3


def test_invalid_json_raises(tmp_path: Path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StateFileError):
        StoryStateStore(path).load()


def test_non_object_raises(tmp_path: Path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(StateFileError):
        StoryStateStore(path).load()


def test_malformed_progress_is_sanitized():
    state = StoryState.from_dict(
        {
            "advanced_progress": {
                "dimensions": {"physical": {"meetings": -3}, "emotional": {"trust_level": 500}},
                "overall_progress": 250,
                "current_milestone_index": -1,
            }
        }
    )
    progress = state.advanced_progress
    assert progress.dimensions.physical.meetings == 0
    assert progress.dimensions.emotional.trust_level == 100
    assert progress.overall_progress == 100
    assert progress.current_milestone_index == 0
