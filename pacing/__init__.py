"""Pacing system: progress tracking, banded constraints, milestones."""

from .constraints import ConstraintChecker, ConstraintReport, Violation
from .dimensions import AdvancedProgress, ProgressDimensions
from .engine import NextChapterConstraints, PacingEngine, PacingResult
from .guideline import build_chapter_guideline
from .milestones import MilestoneSequencer, MilestoneStatus
from .tracker import ProgressTracker, fuse_progress

__all__ = [
    "AdvancedProgress",
    "ConstraintChecker",
    "ConstraintReport",
    "MilestoneSequencer",
    "MilestoneStatus",
    "NextChapterConstraints",
    "PacingEngine",
    "PacingResult",
    "ProgressDimensions",
    "ProgressTracker",
    "Violation",
    "build_chapter_guideline",
    "fuse_progress",
]
