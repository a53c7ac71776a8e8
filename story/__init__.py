"""Story collaborators: config, state store, evaluation history."""

from .config import load_config, storage_path
from .history import EvaluationHistory
from .state import ChapterRecord, StateFileError, StoryState, StoryStateStore

__all__ = [
    "ChapterRecord",
    "EvaluationHistory",
    "StateFileError",
    "StoryState",
    "StoryStateStore",
    "load_config",
    "storage_path",
]
