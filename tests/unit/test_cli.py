"""Tests for the command line entry point."""

import json
from pathlib import Path

from click.testing import CliRunner

from main import EXIT_REJECTED, main

OPENING = "아리아는 루카스와 처음 만났다. 서로에 대한 호기심이 생겼지만 아직은 낯선 사이였다."


def _config_dir(tmp_path: Path) -> Path:
    config_dir = tmp_path / "config"
    config_dir.mkdir(exist_ok=True)
    (config_dir / "settings.yaml").write_text(
        "storage:\n"
        f"  state_file: {tmp_path / 'default_state.json'}\n"
        f"  history_db: {tmp_path / 'history.db'}\n",
        encoding="utf-8",
    )
    return config_dir


def _invoke(tmp_path: Path, *args: str):
    runner = CliRunner()
    return runner.invoke(
        main,
        ["--config-dir", str(_config_dir(tmp_path)), "--state", str(tmp_path / "story.json"), *args],
    )


def _chapter(tmp_path: Path, text: str, name: str = "chapter.txt") -> str:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


def _saved_state(tmp_path: Path) -> dict:
    return json.loads((tmp_path / "story.json").read_text(encoding="utf-8"))


def test_requires_an_action():
    result = CliRunner().invoke(main, [])
    assert result.exit_code == 1


def test_next_prints_constraints(tmp_path: Path):
    result = _invoke(tmp_path, "--next")
    assert result.exit_code == 0
    assert '"current_milestone": "first_encounter"' in result.output


def test_prompt_renders_constraints(tmp_path: Path):
    result = _invoke(tmp_path, "--prompt", "Write chapter 1.")
    assert result.exit_code == 0
    assert "=== Pacing constraints ===" in result.output


def test_guideline_for_next_chapter(tmp_path: Path):
    result = _invoke(tmp_path, "--guideline")
    assert result.exit_code == 0
    assert '"stage": "introduction"' in result.output


def test_first_chapter_is_kept_while_milestone_holds(tmp_path: Path):
    result = _invoke(tmp_path, "--chapter", _chapter(tmp_path, OPENING))
    assert result.exit_code == 0

    state = _saved_state(tmp_path)
    assert len(state["chapters"]) == 1
    assert state["advanced_progress"]["current_milestone_index"] == 0
    assert state["advanced_progress"]["overall_progress"] == 0


def test_second_chapter_is_accepted_and_committed(tmp_path: Path):
    _invoke(tmp_path, "--chapter", _chapter(tmp_path, OPENING))
    result = _invoke(tmp_path, "--chapter", _chapter(tmp_path, OPENING, "ch2.txt"), "--title", "2화")
    assert result.exit_code == 0

    state = _saved_state(tmp_path)
    assert [ch["number"] for ch in state["chapters"]] == [1, 2]
    assert state["chapters"][1]["title"] == "2화"
    assert state["advanced_progress"]["current_milestone_index"] == 1
    assert state["advanced_progress"]["completed_milestones"] == ["first_encounter"]
    assert (tmp_path / "history.db").exists()


def test_violating_chapter_is_rejected(tmp_path: Path):
    _invoke(tmp_path, "--next")  # creates the initial state file
    before = _saved_state(tmp_path)

    result = _invoke(tmp_path, "--chapter", _chapter(tmp_path, "두 사람은 바로 키스를 했다."))

    assert result.exit_code == EXIT_REJECTED
    assert '"kind": "keyword"' in result.output
    after = _saved_state(tmp_path)
    assert after["chapters"] == before["chapters"]
    assert after["advanced_progress"] == before["advanced_progress"]


def test_dry_run_does_not_save(tmp_path: Path):
    _invoke(tmp_path, "--chapter", _chapter(tmp_path, OPENING))
    result = _invoke(tmp_path, "--chapter", _chapter(tmp_path, OPENING, "ch2.txt"), "--dry-run", "--no-history")
    assert result.exit_code == 0

    state = _saved_state(tmp_path)
    assert len(state["chapters"]) == 1
    assert state["advanced_progress"]["current_milestone_index"] == 0


def test_invalid_state_file_exits(tmp_path: Path):
    (tmp_path / "story.json").write_text("{broken", encoding="utf-8")
    result = _invoke(tmp_path, "--next")
    assert result.exit_code == 1


def test_missing_config_exits(tmp_path: Path):
    result = CliRunner().invoke(main, ["--config-dir", str(tmp_path / "nowhere"), "--next"])
    assert result.exit_code == 1


def test_guideline_uses_progress_derived_from_dimensions(tmp_path: Path):
    (tmp_path / "story.json").write_text(
        json.dumps({
            "story_id": "edited",
            "advanced_progress": {
                "dimensions": {"physical": {"meetings": 20}, "social": {"status": "couple"}},
                "overall_progress": 0,
            },
        }),
        encoding="utf-8",
    )

    result = _invoke(tmp_path, "--guideline", "--next")

    assert result.exit_code == 0
    assert '"direction": "slow_down"' in result.output
    assert '"band": "36-55"' in result.output


def test_dry_run_does_not_write_history(tmp_path: Path):
    result = _invoke(tmp_path, "--chapter", _chapter(tmp_path, OPENING), "--dry-run")
    assert result.exit_code == 0
    assert not (tmp_path / "history.db").exists()


def test_default_summary_keeps_the_whole_chapter(tmp_path: Path):
    text = "평범한 하루였다. " * 40 + "아리아는 루카스와 처음 만났다. 묘한 호기심이 생겼다."
    _invoke(tmp_path, "--chapter", _chapter(tmp_path, text))

    state = _saved_state(tmp_path)
    assert state["chapters"][0]["summary"] == text.strip()


def test_history_lists_recorded_evaluations(tmp_path: Path):
    _invoke(tmp_path, "--chapter", _chapter(tmp_path, OPENING))
    _invoke(tmp_path, "--chapter", _chapter(tmp_path, "두 사람은 바로 키스를 했다.", "ch2.txt"))

    result = _invoke(tmp_path, "--history", "5")

    assert result.exit_code == 0
    assert result.output.count('"chapter_number"') == 2
    assert '"valid": 1' not in result.output
    assert '"kind": "keyword"' in result.output


def test_time_only_violation_is_rejected(tmp_path: Path):
    _invoke(tmp_path, "--chapter", _chapter(tmp_path, OPENING))

    result = _invoke(tmp_path, "--chapter", _chapter(tmp_path, "3일 후, 아리아는 다시 시장에 갔다.", "ch2.txt"))

    assert result.exit_code == EXIT_REJECTED
    assert '"kind": "time"' in result.output
    assert len(_saved_state(tmp_path)["chapters"]) == 1
