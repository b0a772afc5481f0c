"""Review pipeline: match -> plan -> compose for one artifact or a batch.

Each artifact's pipeline is independent and side-effect free apart from the
shared cache, so batches run on a thread pool and return results in input
order.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from .cache import EngineCache, get_engine_cache
from .config import settings
from .errors import SkillEngineError
from .loading.composer import ContextComposer
from .loading.planner import ProgressiveLoader
from .matching.matcher import TriggerMatcher
from .observability import get_logger, metrics
from .skills.models import Artifact, Budget, ComposedContext, MatchResult
from .skills.registry import SkillRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome of one artifact in a batch: a context or the error it raised."""

    artifact: Artifact
    context: Optional[ComposedContext] = None
    error: Optional[SkillEngineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _as_budget(budget: Union[Budget, int, None]) -> Budget:
    if budget is None:
        return Budget(settings.default_budget)
    if isinstance(budget, Budget):
        return budget
    return Budget(budget)


class SkillPipeline:
    """Runs the full selection pipeline against a registry."""

    def __init__(
        self,
        registry: SkillRegistry,
        cache: Optional[EngineCache] = None,
        composer: Optional[ContextComposer] = None,
    ):
        self.registry = registry
        self.cache = cache or get_engine_cache()
        self.matcher = TriggerMatcher(self.cache)
        self.loader = ProgressiveLoader(self.matcher, self.cache)
        self.composer = composer or ContextComposer()

    def match(self, artifact: Artifact) -> list[MatchResult]:
        return self.matcher.match(artifact, self.registry.all())

    def review(self, artifact: Artifact, budget: Union[Budget, int, None] = None) -> ComposedContext:
        """Select, plan and compose the context for one artifact.

        Raises:
            BudgetTooSmallError: If the matched core modules exceed the budget
        """
        budget = _as_budget(budget)
        slog = get_logger("pipeline", request_id=artifact.path)
        start = time.perf_counter()

        matches = self.match(artifact)
        plan = self.loader.plan(artifact, matches, budget)
        context = self.composer.compose(plan, artifact.path)

        metrics.observe("pipeline_duration_seconds", time.perf_counter() - start)
        manifest = context.manifest
        slog.debug(
            "composed",
            matched=[m.skill_id for m in matches],
            included=len(manifest.included),
            skipped_for_budget=len(manifest.skipped_for_budget),
            skipped_duplicate=len(manifest.skipped_duplicate),
            total_size=manifest.total_size,
            budget=budget.max_size,
        )
        return context

    def _review_item(self, artifact: Artifact, budget: Budget) -> BatchItemResult:
        try:
            return BatchItemResult(artifact=artifact, context=self.review(artifact, budget))
        except SkillEngineError as e:
            get_logger("pipeline", request_id=artifact.path).warning(
                "review_failed", error_type=type(e).__name__, error=str(e)
            )
            return BatchItemResult(artifact=artifact, error=e)

    def review_batch(
        self,
        artifacts: Sequence[Artifact],
        budget: Union[Budget, int, None] = None,
        max_workers: Optional[int] = None,
    ) -> list[BatchItemResult]:
        """Review many artifacts in parallel.

        Engine errors are captured per artifact; results keep input order.
        """
        if not artifacts:
            return []
        budget = _as_budget(budget)
        workers = min(max_workers or settings.max_workers, len(artifacts))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda a: self._review_item(a, budget), artifacts))

        failed = sum(1 for r in results if not r.ok)
        logger.info(f"Reviewed {len(results)} artifacts with {workers} workers ({failed} failed)")
        return results


def review(
    registry: SkillRegistry,
    artifact: Artifact,
    budget: Union[Budget, int, None] = None,
) -> ComposedContext:
    """Run the pipeline once with a fresh SkillPipeline."""
    return SkillPipeline(registry).review(artifact, budget)
