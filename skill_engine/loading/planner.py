"""Progressive loader: chooses which modules of matched skills to include.

Core modules of all matched skills go in first and are never dropped. Detail
modules whose own tokens hit the artifact are then added greedily in
priority order while they fit the budget; a module that does not fit is
recorded as skipped and the next candidate is tried. No packing
optimisation is attempted, so the outcome is easy to explain.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..cache import EngineCache, get_engine_cache
from ..errors import BudgetTooSmallError
from ..matching.matcher import TriggerMatcher
from ..observability import metrics
from ..skills.models import (
    Artifact,
    Budget,
    LoadPlan,
    MatchResult,
    ModuleDescriptor,
    PlanEntry,
    SkippedModule,
    SkipReason,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    match: MatchResult
    module: ModuleDescriptor
    module_order: int
    hits: int
    size: int

    def sort_key(self) -> tuple[int, int, int, int]:
        return (-self.match.score, -self.hits, self.match.order, self.module_order)


class ProgressiveLoader:
    """Builds a LoadPlan for an artifact from its match results."""

    def __init__(
        self,
        matcher: Optional[TriggerMatcher] = None,
        cache: Optional[EngineCache] = None,
    ):
        self.cache = cache or get_engine_cache()
        self.matcher = matcher or TriggerMatcher(self.cache)

    def plan(self, artifact: Artifact, matches: Sequence[MatchResult], budget: Budget) -> LoadPlan:
        """Plan module inclusion for one artifact.

        Args:
            artifact: The artifact under review
            matches: Match results, ordered by relevance
            budget: Size ceiling for the whole plan

        Returns:
            LoadPlan with core entries first, then detail entries by priority

        Raises:
            BudgetTooSmallError: If core modules do not fit the budget
        """
        entries: list[PlanEntry] = []
        total = 0

        for match in matches:
            skill = match.skill
            size = self.cache.module_size(skill.id, skill.core)
            if size > budget.max_size:
                metrics.increment("budget_too_small_total")
                raise BudgetTooSmallError(budget.max_size, size, skill.id)
            total += size
            entries.append(
                PlanEntry(
                    skill_id=skill.id,
                    module_id=skill.core.id,
                    content=skill.core.content,
                    size=size,
                    is_core=True,
                    concerns=skill.core.concerns,
                    score=match.score,
                )
            )

        if total > budget.max_size:
            metrics.increment("budget_too_small_total")
            raise BudgetTooSmallError(budget.max_size, total)

        skipped: list[SkippedModule] = []
        for candidate in self.candidates(artifact, matches):
            skill_id = candidate.match.skill_id
            module = candidate.module
            if total + candidate.size <= budget.max_size:
                total += candidate.size
                entries.append(
                    PlanEntry(
                        skill_id=skill_id,
                        module_id=module.id,
                        content=module.content,
                        size=candidate.size,
                        concerns=module.concerns,
                        triggers=module.triggers,
                        hits=candidate.hits,
                        score=candidate.match.score,
                    )
                )
            else:
                logger.debug(
                    f"Skipping {skill_id}::{module.id} ({candidate.size} units, "
                    f"{budget.max_size - total} remaining)"
                )
                skipped.append(
                    SkippedModule(
                        skill_id=skill_id,
                        module_id=module.id,
                        size=candidate.size,
                        reason=SkipReason.BUDGET,
                    )
                )

        return LoadPlan(entries=tuple(entries), skipped_for_budget=tuple(skipped), budget=budget)

    def candidates(self, artifact: Artifact, matches: Sequence[MatchResult]) -> list[_Candidate]:
        """Detail modules whose tokens hit the artifact, in priority order."""
        found = []
        for match in matches:
            case_sensitive = match.skill.triggers.case_sensitive
            for module_order, module in enumerate(match.skill.modules):
                hits = self.matcher.match_tokens(module.triggers, artifact.content, case_sensitive)
                if not hits:
                    continue
                found.append(
                    _Candidate(
                        match=match,
                        module=module,
                        module_order=module_order,
                        hits=len(hits),
                        size=self.cache.module_size(match.skill_id, module),
                    )
                )
        found.sort(key=_Candidate.sort_key)
        return found
