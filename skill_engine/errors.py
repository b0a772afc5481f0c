"""Error taxonomy for the skill engine.

Only three conditions are errors. Everything else (no skill matched, a
module skipped for budget or as a duplicate) is an expected outcome that is
recorded in the manifest.
"""

from typing import Optional


class SkillEngineError(Exception):
    """Base class for all skill engine errors."""
    pass


class ConfigurationError(SkillEngineError):
    """Raised when a skill descriptor is malformed or cannot be resolved.

    This is fatal at registry load time.
    """

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{message} (source: {source})"
        super().__init__(message)


# Older name used by descriptor loading code
DescriptorError = ConfigurationError


class BudgetTooSmallError(SkillEngineError):
    """Raised when the core modules of matched skills do not fit the budget."""

    def __init__(self, budget: int, required: int, skill_id: Optional[str] = None):
        self.budget = budget
        self.required = required
        self.skill_id = skill_id
        if skill_id:
            message = (
                f"Core module of {skill_id} needs {required} units "
                f"but the budget is {budget}"
            )
        else:
            message = f"Core modules need {required} units but the budget is {budget}"
        super().__init__(message)


class NotFoundError(SkillEngineError, KeyError):
    """Raised when a registry lookup names an unknown skill."""

    def __init__(self, skill_id: str):
        self.skill_id = skill_id
        super().__init__(f"Skill not found: {skill_id}")

    def __str__(self) -> str:
        return self.args[0]
