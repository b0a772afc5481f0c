"""Trigger matcher: decides which skills apply to an artifact.

Each skill declares three independent trigger categories. A skill matches
when any rule in any category hits. The relevance score rewards a path hit
most, then each distinct content token, so skills bound to the artifact's
file type sort ahead of skills that only share vocabulary with it.
"""

import logging
from typing import Iterable, Optional, Sequence

from ..cache import EngineCache, get_engine_cache
from ..observability import metrics
from ..skills.models import (
    Artifact,
    FiredTrigger,
    MatchResult,
    SkillDescriptor,
    TriggerCategory,
)
from .triggers import PathRule, TokenRule

logger = logging.getLogger(__name__)

PATH_WEIGHT = 2
MAX_TOKEN_SCORE = 5


class TriggerMatcher:
    """Evaluates artifacts against skill trigger sets."""

    def __init__(self, cache: Optional[EngineCache] = None):
        self.cache = cache or get_engine_cache()

    def path_rule(self, pattern: str) -> PathRule:
        return self.cache.get_or_compute(("path", pattern), lambda: PathRule.compile(pattern))

    def token_rule(self, token: str, case_sensitive: bool = True) -> TokenRule:
        return self.cache.get_or_compute(
            ("token", token, case_sensitive),
            lambda: TokenRule.compile(token, case_sensitive),
        )

    def match_tokens(
        self,
        tokens: Iterable[str],
        content: str,
        case_sensitive: bool = True,
    ) -> list[tuple[str, str]]:
        """Return (token, matched substring) for every distinct token that hits."""
        hits = []
        seen = set()
        for token in tokens:
            if token in seen:
                continue
            seen.add(token)
            matched = self.token_rule(token, case_sensitive).search(content)
            if matched is not None:
                hits.append((token, matched))
        return hits

    def evaluate(self, artifact: Artifact, skill: SkillDescriptor, order: int = 0) -> Optional[MatchResult]:
        """Evaluate one skill against an artifact.

        Returns:
            MatchResult if any trigger fired, None otherwise
        """
        triggers = skill.triggers
        fired: list[FiredTrigger] = []

        for pattern in triggers.paths:
            matched = self.path_rule(pattern).match(artifact.path)
            if matched is not None:
                fired.append(FiredTrigger(TriggerCategory.PATH, pattern, matched))

        token_hits = 0
        seen_tokens: set[str] = set()
        for category, tokens in (
            (TriggerCategory.LEXICAL, triggers.lexical),
            (TriggerCategory.ANNOTATION, triggers.annotations),
        ):
            for token, matched in self.match_tokens(tokens, artifact.content, triggers.case_sensitive):
                fired.append(FiredTrigger(category, token, matched))
                if token not in seen_tokens:
                    seen_tokens.add(token)
                    token_hits += 1

        if not fired:
            return None

        path_matched = any(f.category == TriggerCategory.PATH for f in fired)
        score = (PATH_WEIGHT if path_matched else 0) + min(token_hits, MAX_TOKEN_SCORE)
        logger.debug(f"Skill {skill.id} matched {artifact.path} (score={score}, fired={len(fired)})")
        return MatchResult(skill=skill, fired=tuple(fired), score=score, order=order)

    def match(self, artifact: Artifact, descriptors: Sequence[SkillDescriptor]) -> list[MatchResult]:
        """Match an artifact against all descriptors.

        Disabled skills are never matched. Results are sorted by score
        descending; equal scores keep registration order.
        """
        results = []
        for order, skill in enumerate(descriptors):
            if not skill.enabled:
                continue
            result = self.evaluate(artifact, skill, order)
            if result is not None:
                results.append(result)
                metrics.increment("skill_match_total", labels={"skill": skill.id})

        results.sort(key=lambda r: -r.score)
        return results


def match(artifact: Artifact, descriptors: Sequence[SkillDescriptor]) -> list[MatchResult]:
    """Match an artifact against descriptors with a default matcher."""
    return TriggerMatcher().match(artifact, descriptors)
