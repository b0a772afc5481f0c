"""Context composer: turns a LoadPlan into the final text and manifest.

Independently authored skills often cover the same concern. When two detail
modules from different skills share a concern tag and most of their trigger
tokens, only the one that ranks first in the plan is kept; the other is
reported as a duplicate.
"""

import logging
from typing import Optional

from ..config import settings
from ..observability import metrics
from ..skills.models import (
    ComposedContext,
    LoadPlan,
    Manifest,
    PlanEntry,
    SkippedModule,
    SkipReason,
)

logger = logging.getLogger(__name__)

OVERLAP_THRESHOLD = 0.5


def trigger_overlap(a: tuple[str, ...], b: tuple[str, ...]) -> float:
    """Share of the smaller trigger set that also appears in the other."""
    set_a, set_b = set(a), set(b)
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / min(len(set_a), len(set_b))


def is_duplicate(candidate: PlanEntry, kept: PlanEntry) -> bool:
    """Whether candidate repeats a concern already covered by kept."""
    if candidate.is_core or kept.is_core:
        return False
    if candidate.skill_id == kept.skill_id:
        return False
    if not set(candidate.concerns) & set(kept.concerns):
        return False
    return trigger_overlap(candidate.triggers, kept.triggers) > OVERLAP_THRESHOLD


def render_entry(entry: PlanEntry) -> str:
    return f"## {entry.skill_id} :: {entry.module_id}\n\n{entry.content.strip()}"


class ContextComposer:
    """Deduplicates and concatenates planned modules."""

    def __init__(self, separator: Optional[str] = None):
        self.separator = separator if separator is not None else settings.section_separator

    def compose(self, plan: LoadPlan, artifact_path: str = "") -> ComposedContext:
        """Compose the final context.

        Returns:
            ComposedContext whose manifest lists included modules, modules
            skipped for budget and modules skipped as duplicates
        """
        kept: list[PlanEntry] = []
        duplicates: list[SkippedModule] = []

        for entry in plan.entries:
            original = next((k for k in kept if is_duplicate(entry, k)), None)
            if original is not None:
                logger.debug(f"{entry.key} duplicates {original.key}")
                duplicates.append(
                    SkippedModule(
                        skill_id=entry.skill_id,
                        module_id=entry.module_id,
                        size=entry.size,
                        reason=SkipReason.DUPLICATE,
                        duplicate_of=original.key,
                    )
                )
                continue
            kept.append(entry)

        manifest = Manifest(
            included=tuple(kept),
            skipped_for_budget=plan.skipped_for_budget,
            skipped_duplicate=tuple(duplicates),
            total_size=sum(e.size for e in kept),
            budget=plan.budget.max_size,
        )

        metrics.increment("module_included_total", value=len(kept))
        if plan.skipped_for_budget:
            metrics.increment(
                "module_skipped_total",
                labels={"reason": SkipReason.BUDGET.value},
                value=len(plan.skipped_for_budget),
            )
        if duplicates:
            metrics.increment(
                "module_skipped_total",
                labels={"reason": SkipReason.DUPLICATE.value},
                value=len(duplicates),
            )

        text = self.separator.join(render_entry(e) for e in kept)
        return ComposedContext(text=text, manifest=manifest, artifact_path=artifact_path)


def compose(plan: LoadPlan, artifact_path: str = "") -> ComposedContext:
    """Compose a plan with the default composer."""
    return ContextComposer().compose(plan, artifact_path)
