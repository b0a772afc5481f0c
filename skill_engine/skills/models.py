"""Data model for skill descriptors, artifacts, matches and load plans.

Descriptors are created once at registry load and never mutated. Artifacts,
match results and load plans are created fresh for each review call.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Optional


class TriggerCategory(str, Enum):
    """Kinds of trigger rules a skill can declare."""
    PATH = "path"
    LEXICAL = "lexical"
    ANNOTATION = "annotation"


class SkipReason(str, Enum):
    """Why a module was left out of the composed context."""
    BUDGET = "skipped-for-budget"
    DUPLICATE = "skipped-duplicate"


# Extension -> language tag
LANGUAGE_BY_EXTENSION = {
    ".py": "python",
    ".pyi": "python",
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".scala": "scala",
    ".groovy": "groovy",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".swift": "swift",
    ".sql": "sql",
    ".sh": "shell",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".xml": "xml",
    ".md": "markdown",
    ".tf": "terraform",
}


def infer_language(path: str) -> str:
    """Infer a language tag from a file path's extension."""
    suffix = PurePosixPath(path.replace("\\", "/")).suffix.lower()
    return LANGUAGE_BY_EXTENSION.get(suffix, "unknown")


@dataclass(frozen=True)
class TriggerSet:
    """Trigger rules for a skill.

    Tokens are literal substrings unless prefixed with ``re:``, in which case
    the remainder is a regular expression.
    """

    paths: tuple[str, ...] = ()
    lexical: tuple[str, ...] = ()
    annotations: tuple[str, ...] = ()
    case_sensitive: bool = True

    def is_empty(self) -> bool:
        return not (self.paths or self.lexical or self.annotations)

    def tokens(self) -> tuple[str, ...]:
        """Lexical and annotation tokens, in declaration order."""
        return self.lexical + self.annotations


@dataclass(frozen=True)
class ModuleDescriptor:
    """A unit of skill content: the core module or an optional detail module."""

    id: str
    content: str
    size: Optional[int] = None  # declared estimate; computed when None
    triggers: tuple[str, ...] = ()
    concerns: tuple[str, ...] = ()
    source: Optional[str] = None


@dataclass(frozen=True)
class SkillDescriptor:
    """A named, versioned skill with its trigger rules and modules."""

    name: str
    version: str
    core: ModuleDescriptor
    triggers: TriggerSet = field(default_factory=TriggerSet)
    modules: tuple[ModuleDescriptor, ...] = ()
    description: str = ""
    enabled: bool = True
    source: Optional[str] = None

    @property
    def id(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(frozen=True)
class Artifact:
    """The source file under review."""

    path: str
    content: str
    language: str = ""

    def __post_init__(self):
        if not self.language:
            object.__setattr__(self, "language", infer_language(self.path))

    @property
    def normalized_path(self) -> str:
        return self.path.replace("\\", "/")

    @classmethod
    def from_path(cls, path: Path, language: str = "") -> "Artifact":
        """Read an artifact from disk."""
        return cls(
            path=str(path),
            content=Path(path).read_text(encoding="utf-8", errors="replace"),
            language=language,
        )


@dataclass(frozen=True)
class FiredTrigger:
    """A single trigger rule that hit, with what it matched."""

    category: TriggerCategory
    rule: str
    matched: str


@dataclass(frozen=True)
class MatchResult:
    """A skill whose triggers fired for an artifact."""

    skill: SkillDescriptor
    fired: tuple[FiredTrigger, ...]
    score: int
    order: int  # registration index, used as the stable tie-break

    @property
    def skill_id(self) -> str:
        return self.skill.id

    @property
    def path_matched(self) -> bool:
        return any(f.category == TriggerCategory.PATH for f in self.fired)

    def categories(self) -> set[TriggerCategory]:
        return {f.category for f in self.fired}


@dataclass(frozen=True)
class Budget:
    """Maximum total size of one assembled context."""

    max_size: int

    def __post_init__(self):
        if self.max_size <= 0:
            raise ValueError(f"Budget must be positive, got {self.max_size}")


@dataclass(frozen=True)
class PlanEntry:
    """A module chosen for inclusion."""

    skill_id: str
    module_id: str
    content: str
    size: int
    is_core: bool = False
    concerns: tuple[str, ...] = ()
    triggers: tuple[str, ...] = ()
    hits: int = 0
    score: int = 0

    @property
    def key(self) -> str:
        return f"{self.skill_id}::{self.module_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill": self.skill_id,
            "module": self.module_id,
            "size": self.size,
            "core": self.is_core,
        }


@dataclass(frozen=True)
class SkippedModule:
    """A module left out of the output, and why."""

    skill_id: str
    module_id: str
    size: int
    reason: SkipReason
    duplicate_of: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.skill_id}::{self.module_id}"

    def to_dict(self) -> dict[str, Any]:
        result = {
            "skill": self.skill_id,
            "module": self.module_id,
            "size": self.size,
            "reason": self.reason.value,
        }
        if self.duplicate_of:
            result["duplicate_of"] = self.duplicate_of
        return result


@dataclass(frozen=True)
class LoadPlan:
    """Ordered modules chosen for one artifact, plus what the budget excluded."""

    entries: tuple[PlanEntry, ...]
    skipped_for_budget: tuple[SkippedModule, ...]
    budget: Budget

    @property
    def total_size(self) -> int:
        return sum(e.size for e in self.entries)

    @property
    def remaining(self) -> int:
        return self.budget.max_size - self.total_size


@dataclass(frozen=True)
class Manifest:
    """Audit record of what was included in a composed context and why."""

    included: tuple[PlanEntry, ...]
    skipped_for_budget: tuple[SkippedModule, ...]
    skipped_duplicate: tuple[SkippedModule, ...]
    total_size: int
    budget: int

    @property
    def included_skills(self) -> list[str]:
        seen: list[str] = []
        for entry in self.included:
            if entry.skill_id not in seen:
                seen.append(entry.skill_id)
        return seen

    def to_dict(self) -> dict[str, Any]:
        return {
            "included": [e.to_dict() for e in self.included],
            "skipped_for_budget": [s.to_dict() for s in self.skipped_for_budget],
            "skipped_duplicate": [s.to_dict() for s in self.skipped_duplicate],
            "total_size": self.total_size,
            "budget": self.budget,
        }


@dataclass(frozen=True)
class ComposedContext:
    """Final assembled payload for the downstream consumer."""

    text: str
    manifest: Manifest
    artifact_path: str = ""
