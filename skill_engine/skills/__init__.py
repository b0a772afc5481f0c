"""Skill descriptors, their loader and the registry.

Usage:
    from skill_engine.skills import SkillRegistry

    registry = SkillRegistry.load([Path("skills")])
    skill = registry.lookup("spring-transactions@1.2.0")
"""

from .loader import SkillLoader
from .models import (
    Artifact,
    Budget,
    ComposedContext,
    FiredTrigger,
    LoadPlan,
    Manifest,
    MatchResult,
    ModuleDescriptor,
    PlanEntry,
    SkillDescriptor,
    SkippedModule,
    SkipReason,
    TriggerCategory,
    TriggerSet,
    infer_language,
)
from .registry import SkillRegistry, get_skill_registry, load_registry, reset_skill_registry

__all__ = [
    "Artifact",
    "Budget",
    "ComposedContext",
    "FiredTrigger",
    "LoadPlan",
    "Manifest",
    "MatchResult",
    "ModuleDescriptor",
    "PlanEntry",
    "SkillDescriptor",
    "SkillLoader",
    "SkillRegistry",
    "SkippedModule",
    "SkipReason",
    "TriggerCategory",
    "TriggerSet",
    "get_skill_registry",
    "infer_language",
    "load_registry",
    "reset_skill_registry",
]
