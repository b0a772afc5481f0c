"""Trigger rules and the matcher."""

from .matcher import TriggerMatcher, match
from .triggers import PathRule, TokenRule, glob_to_regex

__all__ = ["PathRule", "TokenRule", "TriggerMatcher", "glob_to_regex", "match"]
