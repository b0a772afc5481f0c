"""Read-through cache for module sizes and compiled trigger rules.

Values are deterministic for a given key, so concurrent first-population is
harmless: the first writer wins and every later reader sees that value.
"""

import logging
import math
import threading
from typing import TYPE_CHECKING, Callable, Hashable, Optional, TypeVar

from .config import settings
from .observability import metrics

if TYPE_CHECKING:
    from .skills.models import ModuleDescriptor

logger = logging.getLogger(__name__)

T = TypeVar("T")


def estimate_size(content: str, unit: str = "chars", chars_per_token: int = 4) -> int:
    """Estimate the size of content in the configured unit."""
    if unit == "tokens":
        return math.ceil(len(content) / chars_per_token)
    return len(content)


class EngineCache:
    """Write-once-per-key memo shared across pipelines."""

    def __init__(self):
        self._values: dict[Hashable, object] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_or_compute(self, key: Hashable, factory: Callable[[], T]) -> T:
        """Return the cached value for key, computing it on first use.

        The factory runs outside the lock; insertion is insert-if-absent.
        """
        try:
            value = self._values[key]
        except KeyError:
            pass
        else:
            with self._lock:
                self.hits += 1
            metrics.increment("cache_hit_total")
            return value  # type: ignore[return-value]

        computed = factory()
        with self._lock:
            value = self._values.setdefault(key, computed)
            self.misses += 1
        metrics.increment("cache_miss_total")
        return value  # type: ignore[return-value]

    def module_size(
        self,
        skill_id: str,
        module: "ModuleDescriptor",
        unit: Optional[str] = None,
    ) -> int:
        """Size of a module, declared or estimated from its content."""
        if module.size is not None:
            return module.size
        unit = unit or settings.size_unit
        per_token = settings.chars_per_token
        # Keyed on content too: a reload can change it under the same ids
        return self.get_or_compute(
            ("size", skill_id, module.id, unit, per_token, module.content),
            lambda: estimate_size(module.content, unit, per_token),
        )

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._values

    def clear(self) -> None:
        """Drop every cached value and reset the hit and miss counts."""
        with self._lock:
            self._values.clear()
            self.hits = 0
            self.misses = 0
        logger.debug("Engine cache cleared")


# Process-wide cache shared by default pipelines
_global_cache: Optional[EngineCache] = None


def get_engine_cache() -> EngineCache:
    """Get the process-wide EngineCache instance."""
    global _global_cache
    if _global_cache is None:
        _global_cache = EngineCache()
    return _global_cache
