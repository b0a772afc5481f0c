"""Engine metrics and structured pipeline events.

Usage:
    from skill_engine.observability import metrics, get_logger

    metrics.increment("module_skipped_total", labels={"reason": "skipped-for-budget"})
    print(metrics.to_prometheus())

    slog = get_logger("pipeline", request_id="src/Foo.java")
    slog.debug("composed", included=3, total_size=2100)
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

LabelKey = tuple[tuple[str, str], ...]

COUNTERS = {
    "skill_match_total": "Skills matched, by skill id",
    "module_included_total": "Modules included in composed contexts",
    "module_skipped_total": "Modules left out, by reason",
    "budget_too_small_total": "Plans rejected because core modules did not fit",
    "cache_hit_total": "Cache lookups served from memory",
    "cache_miss_total": "Cache lookups that computed a value",
}

HISTOGRAMS = {
    "pipeline_duration_seconds": "Match, plan and compose latency per artifact",
}


def _label_key(labels: Optional[dict[str, str]]) -> LabelKey:
    return tuple(sorted((labels or {}).items()))


@dataclass
class Counter:
    """Monotonic count, split by label set."""
    name: str
    help_text: str
    values: dict[LabelKey, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def increment(self, labels: Optional[dict[str, str]] = None, value: int = 1) -> None:
        key = _label_key(labels)
        with self._lock:
            self.values[key] = self.values.get(key, 0) + value

    def get(self, labels: Optional[dict[str, str]] = None) -> int:
        return self.values.get(_label_key(labels), 0)

    def total(self) -> int:
        """Sum over all label sets."""
        with self._lock:
            return sum(self.values.values())

    def reset(self) -> None:
        with self._lock:
            self.values.clear()


@dataclass
class Histogram:
    """Observation count and running sum, exported as a Prometheus summary."""
    name: str
    help_text: str
    count: int = 0
    sum: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def observe(self, value: float) -> None:
        with self._lock:
            self.count += 1
            self.sum += value

    def reset(self) -> None:
        with self._lock:
            self.count = 0
            self.sum = 0.0


class MetricsRegistry:
    """The engine's fixed set of counters and histograms."""

    def __init__(self):
        self._counters = {name: Counter(name, text) for name, text in COUNTERS.items()}
        self._histograms = {name: Histogram(name, text) for name, text in HISTOGRAMS.items()}

    def increment(self, name: str, labels: Optional[dict[str, str]] = None, value: int = 1) -> None:
        self._counters[name].increment(labels, value)

    def observe(self, name: str, value: float) -> None:
        self._histograms[name].observe(value)

    def get_counter(self, name: str) -> Optional[Counter]:
        return self._counters.get(name)

    def get_histogram(self, name: str) -> Optional[Histogram]:
        return self._histograms.get(name)

    def to_prometheus(self) -> str:
        """Render every metric in the Prometheus text exposition format."""
        lines = []
        for name, counter in self._counters.items():
            lines += [f"# HELP {name} {counter.help_text}", f"# TYPE {name} counter"]
            if not counter.values:
                lines.append(f"{name} 0")
            for key, value in sorted(counter.values.items()):
                labels = ",".join(f'{k}="{v}"' for k, v in key)
                lines.append(f"{name}{{{labels}}} {value}" if labels else f"{name} {value}")

        for name, histogram in self._histograms.items():
            lines += [
                f"# HELP {name} {histogram.help_text}",
                f"# TYPE {name} summary",
                f"{name}_count {histogram.count}",
                f"{name}_sum {histogram.sum:.6f}",
            ]
        return "\n".join(lines)

    def reset_all(self) -> None:
        """Zero every metric (for testing)."""
        for counter in self._counters.values():
            counter.reset()
        for histogram in self._histograms.values():
            histogram.reset()


# Global metrics instance
metrics = MetricsRegistry()


class StructuredLogger:
    """Emits one JSON object per event, tagged with component and request id."""

    def __init__(self, component: str, request_id: Optional[str] = None):
        self.component = component
        self.request_id = request_id
        self._logger = logging.getLogger(f"skill_engine.{component}")

    def _emit(self, level: int, event: str, fields: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        entry = {"component": self.component, "event": event}
        if self.request_id:
            entry["request_id"] = self.request_id
        entry.update(fields)
        self._logger.log(level, json.dumps(entry, default=str))

    def debug(self, event: str, **fields) -> None:
        self._emit(logging.DEBUG, event, fields)

    def warning(self, event: str, **fields) -> None:
        self._emit(logging.WARNING, event, fields)


def get_logger(component: str, request_id: Optional[str] = None) -> StructuredLogger:
    """Get a structured logger for a pipeline component."""
    return StructuredLogger(component, request_id)
