"""Entry point for the pacing gate.

Usage:
    python main.py --chapter ch12.txt                 # Validate and commit a chapter
    python main.py --chapter ch12.txt --dry-run       # Validate without saving
    cat ch12.txt | python main.py --chapter -         # Read the chapter from stdin
    python main.py --next                             # Constraints for the next chapter
    python main.py --next --prompt "Write chapter 12" # ... rendered into a prompt
    python main.py --guideline                        # Stage guideline for the next chapter
    python main.py --history 5                        # Last five recorded evaluations
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from pacing import PacingEngine, PacingResult, build_chapter_guideline
from story.config import load_config, storage_path
from story.history import EvaluationHistory
from story.state import StateFileError, StoryState, StoryStateStore

ROOT = Path(__file__).resolve().parent

EXIT_REJECTED = 2


def _setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    fmt = "%(asctime)s — %(name)s — %(levelname)s — %(message)s"

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=fmt, handlers=handlers)

    # Quiet down noisy libraries
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def _resolve(path: str) -> Path:
    p = Path(path)
    return p if p.is_absolute() else ROOT / p


def _echo_json(payload: dict) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


async def _record(db_path: Path, story: StoryState, chapter_number: int, result: PacingResult) -> int:
    async with EvaluationHistory(db_path) as db:
        await db.log_evaluation(story.story_id, chapter_number, result)
        return await db.get_rejection_count(story.story_id, chapter_number)


async def _recent(db_path: Path, story_id: str, limit: int) -> list[dict]:
    async with EvaluationHistory(db_path) as db:
        rows = await db.get_recent_evaluations(limit=limit, story_id=story_id)
    for row in rows:
        row["violations"] = json.loads(row["violations"] or "[]")
        row["suggestions"] = json.loads(row["suggestions"] or "[]")
    return rows


@click.command()
@click.option("--chapter", "chapter_path", type=click.Path(allow_dash=True), default=None,
              help="Chapter text to validate ('-' for stdin)")
@click.option("--title", default="", help="Title recorded for an accepted chapter")
@click.option("--summary", default="",
              help="Summary recorded for a kept chapter (defaults to the full chapter text)")
@click.option("--next", "show_next", is_flag=True, help="Print constraints for the next chapter")
@click.option("--prompt", "base_prompt", default=None, help="Render next-chapter constraints into this prompt")
@click.option("--guideline", is_flag=True, help="Print the stage guideline for the next chapter")
@click.option("--history", "history_limit", type=click.IntRange(min=1), default=None,
              help="Print the last N recorded evaluations for this story")
@click.option("--state", "state_file", type=click.Path(), default=None, help="Story state JSON file")
@click.option("--dry-run", is_flag=True, help="Validate without saving the story state or history")
@click.option("--no-history", is_flag=True, help="Do not record the evaluation in the history DB")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.option("--config-dir", type=click.Path(), default=None, help="Config directory")
def main(
    chapter_path: str | None,
    title: str,
    summary: str,
    show_next: bool,
    base_prompt: str | None,
    guideline: bool,
    history_limit: int | None,
    state_file: str | None,
    dry_run: bool,
    no_history: bool,
    verbose: bool,
    config_dir: str | None,
) -> None:
    """Pacing gate: keep generated chapters from rushing the story."""

    if not chapter_path and not show_next and not guideline and base_prompt is None and not history_limit:
        click.echo("Specify --chapter, --next, --guideline or --history. Use --help for details.")
        sys.exit(1)

    try:
        cfg = load_config(config_dir)
    except FileNotFoundError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    log_file = (cfg.get("storage") or {}).get("log_file")
    _setup_logging(verbose=verbose, log_file=log_file)

    state_path = Path(state_file) if state_file else _resolve(
        storage_path(cfg, "state_file", "data/story_state.json")
    )
    store = StoryStateStore(state_path)
    try:
        story = store.load()
    except StateFileError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    engine = PacingEngine(cfg)

    if guideline:
        total = (cfg.get("story") or {}).get("total_chapters", 75)
        brief = build_chapter_guideline(
            story.next_chapter_number,
            romance_level=engine.current_progress(story),
            tropes=story.tropes,
            used_subplots=story.used_subplots,
        )
        payload = brief.to_dict()
        payload["total_chapters"] = total
        _echo_json(payload)

    if history_limit:
        db_path = _resolve(storage_path(cfg, "history_db", "data/history.db"))
        rows = asyncio.run(_recent(db_path, story.story_id, history_limit))
        click.echo(json.dumps(rows, indent=2, ensure_ascii=False))

    if show_next or base_prompt is not None:
        constraints = engine.build_constraints_for_next(story)
        if base_prompt is not None:
            click.echo(constraints.render_prompt(base_prompt))
        else:
            _echo_json(constraints.to_dict())

    if not chapter_path:
        return

    with click.open_file(chapter_path, encoding="utf-8") as f:
        text = f.read()

    chapter_number = story.next_chapter_number
    result = engine.validate_and_update(text, story)
    _echo_json(result.to_dict())

    if not no_history and not dry_run:
        db_path = _resolve(storage_path(cfg, "history_db", "data/history.db"))
        rejected = asyncio.run(_record(db_path, story, chapter_number, result))
        if rejected:
            click.echo(f"  Chapter {chapter_number}: {rejected} rejected attempt(s) so far", err=True)

    if result.violations:
        click.echo(f"\n  Chapter {chapter_number} rejected. Regenerate with the suggestions above.", err=True)
        sys.exit(EXIT_REJECTED)

    # A milestone hold keeps pacing state frozen, but the chapter itself still
    # counts towards the minimum chapter gate.
    held = not result.valid

    if dry_run:
        click.echo(f"\n  DRY RUN: chapter {chapter_number} checked, state not saved.", err=True)
        return

    story.append_chapter(title=title, summary=summary or text.strip())
    store.save(story)
    click.echo(f"  State saved to {store.path}", err=True)
    if held:
        click.echo(f"\n  Chapter {chapter_number} kept; milestone held, pacing state unchanged.", err=True)
    else:
        click.echo(f"\n  Chapter {chapter_number} accepted at {result.overall_progress:.1f}%.", err=True)


if __name__ == "__main__":
    main()
