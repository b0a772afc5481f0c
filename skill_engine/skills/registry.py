"""Skill registry: the validated, read-only set of skill descriptors.

The registry is built once at startup and shared across pipelines. Reloading
builds a new registry from the same sources; an existing registry is never
mutated.
"""

import logging
import re
from typing import Iterable, Iterator, Optional, Sequence

from ..errors import ConfigurationError, NotFoundError
from ..matching.triggers import validate_pattern, validate_token
from .loader import DescriptorSource, SkillLoader
from .models import SkillDescriptor

logger = logging.getLogger(__name__)


def validate_descriptor(skill: SkillDescriptor) -> None:
    """Validate one descriptor in isolation.

    Raises:
        ConfigurationError: If triggers are empty or do not compile, or
            module ids collide
    """
    source = skill.source or skill.id

    if skill.triggers.is_empty():
        raise ConfigurationError(f"Skill {skill.id} declares no triggers", source)

    for pattern in skill.triggers.paths:
        try:
            validate_pattern(pattern)
        except (ValueError, re.error) as e:
            raise ConfigurationError(f"Skill {skill.id} has an invalid path pattern {pattern!r}: {e}", source) from e

    for token in skill.triggers.tokens():
        try:
            validate_token(token, skill.triggers.case_sensitive)
        except (ValueError, re.error) as e:
            raise ConfigurationError(f"Skill {skill.id} has an invalid token {token!r}: {e}", source) from e

    seen = {skill.core.id}
    for module in skill.modules:
        if module.id in seen:
            raise ConfigurationError(f"Skill {skill.id} has duplicate module id '{module.id}'", source)
        seen.add(module.id)
        if not module.triggers:
            raise ConfigurationError(f"Module '{module.id}' of {skill.id} declares no triggers", source)
        for token in module.triggers:
            try:
                validate_token(token, skill.triggers.case_sensitive)
            except (ValueError, re.error) as e:
                raise ConfigurationError(
                    f"Module '{module.id}' of {skill.id} has an invalid token {token!r}: {e}", source
                ) from e


class SkillRegistry:
    """Ordered, validated collection of skill descriptors keyed by id."""

    def __init__(
        self,
        descriptors: Sequence[SkillDescriptor] = (),
        sources: Sequence[DescriptorSource] = (),
    ):
        """Build a registry from already-parsed descriptors.

        Use SkillRegistry.load() to read descriptor sources.

        Raises:
            ConfigurationError: If any descriptor is invalid or ids collide
        """
        self._sources = tuple(sources)
        self._descriptors: tuple[SkillDescriptor, ...] = ()
        self._by_id: dict[str, SkillDescriptor] = {}
        self._by_name: dict[str, list[SkillDescriptor]] = {}

        for skill in descriptors:
            validate_descriptor(skill)
            if skill.id in self._by_id:
                raise ConfigurationError(
                    f"Duplicate skill {skill.id} (also defined in {self._by_id[skill.id].source})",
                    skill.source,
                )
            self._by_id[skill.id] = skill
            self._by_name.setdefault(skill.name, []).append(skill)

        self._descriptors = tuple(descriptors)

    @classmethod
    def load(
        cls,
        sources: Iterable[DescriptorSource],
        loader: Optional[SkillLoader] = None,
    ) -> "SkillRegistry":
        """Load and validate descriptors from sources.

        Raises:
            ConfigurationError: On any malformed or conflicting descriptor
        """
        sources = list(sources)
        loader = loader or SkillLoader()
        descriptors = loader.load_sources(sources)
        registry = cls(descriptors, sources)
        logger.info(f"Loaded {len(registry)} skills from {len(sources)} sources")
        return registry

    def reload(self, loader: Optional[SkillLoader] = None) -> "SkillRegistry":
        """Build a fresh registry from the same sources."""
        if not self._sources:
            raise ConfigurationError("Registry was not loaded from sources and cannot be reloaded")
        return type(self).load(self._sources, loader)

    def lookup(self, skill_id: str) -> SkillDescriptor:
        """Get a descriptor by ``name@version``, or by bare name if unambiguous.

        Raises:
            NotFoundError: If no such skill is registered
        """
        skill = self._by_id.get(skill_id)
        if skill is not None:
            return skill
        candidates = self._by_name.get(skill_id, [])
        if len(candidates) == 1:
            return candidates[0]
        raise NotFoundError(skill_id)

    def all(self) -> tuple[SkillDescriptor, ...]:
        """All descriptors in registration order."""
        return self._descriptors

    def active(self) -> tuple[SkillDescriptor, ...]:
        """Enabled descriptors in registration order."""
        return tuple(s for s in self._descriptors if s.enabled)

    def versions(self, name: str) -> list[str]:
        return [s.version for s in self._by_name.get(name, [])]

    @property
    def sources(self) -> tuple[DescriptorSource, ...]:
        return self._sources

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[SkillDescriptor]:
        return iter(self._descriptors)

    def __contains__(self, skill_id: object) -> bool:
        return isinstance(skill_id, str) and (skill_id in self._by_id or len(self._by_name.get(skill_id, [])) == 1)


def load_registry(sources: Iterable[DescriptorSource]) -> SkillRegistry:
    """Load a registry from descriptor sources."""
    return SkillRegistry.load(sources)


# Shared instance for the CLI and other process-wide callers
_global_registry: Optional[SkillRegistry] = None


def get_skill_registry(sources: Optional[Iterable[DescriptorSource]] = None) -> SkillRegistry:
    """Get the process-wide SkillRegistry, loading it on first use.

    Args:
        sources: Descriptor sources; defaults to settings.skills_dir
    """
    global _global_registry
    if _global_registry is None:
        if sources is None:
            from ..config import settings
            sources = [settings.resolve_path(settings.skills_dir)]
        _global_registry = SkillRegistry.load(sources)
    return _global_registry


def reset_skill_registry() -> None:
    """Drop the process-wide registry so the next call reloads it."""
    global _global_registry
    _global_registry = None
