"""Progressive loading and context composition."""

from .composer import ContextComposer, compose
from .planner import ProgressiveLoader

__all__ = ["ContextComposer", "ProgressiveLoader", "compose"]
