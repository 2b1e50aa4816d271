"""In-process metrics, exported in Prometheus text format at /metrics."""

from __future__ import annotations

import re
import threading
from typing import Dict, Iterable, List, Optional, Tuple, Type, TypeVar

LabelValues = Tuple[str, ...]


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\"", "\\\"").replace("\n", "\\n")


class _Metric:
    kind = "untyped"

    def __init__(self, name: str, help_text: str = "", label_names: Optional[Iterable[str]] = None):
        self.name = name
        self.help_text = help_text
        self.label_names = list(label_names or [])
        self._values: Dict[LabelValues, float] = {}
        self._lock = threading.Lock()

    def _key(self, labels: Optional[Dict[str, str]]) -> LabelValues:
        labels = labels or {}
        return tuple(str(labels.get(name, "")) for name in self.label_names)

    def _render_labels(self, values: LabelValues) -> str:
        if not self.label_names:
            return ""
        pairs = ",".join(f'{n}="{_escape(v)}"' for n, v in zip(self.label_names, values))
        return "{" + pairs + "}"

    def value(self, labels: Optional[Dict[str, str]] = None) -> float:
        with self._lock:
            return self._values.get(self._key(labels), 0.0)

    def export(self) -> List[str]:
        lines = []
        if self.help_text:
            lines.append(f"# HELP {self.name} {self.help_text}")
        lines.append(f"# TYPE {self.name} {self.kind}")
        with self._lock:
            for values, number in sorted(self._values.items()):
                lines.append(f"{self.name}{self._render_labels(values)} {number}")
        return lines

    def reset(self) -> None:
        with self._lock:
            self._values.clear()


class Counter(_Metric):
    kind = "counter"

    def inc(self, labels: Optional[Dict[str, str]] = None, amount: float = 1.0) -> None:
        if amount < 0:
            raise ValueError("Counters only go up")
        key = self._key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + float(amount)


class Gauge(_Metric):
    kind = "gauge"

    def set(self, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = self._key(labels)
        with self._lock:
            self._values[key] = float(value)


M = TypeVar("M", bound=_Metric)


class MetricsRegistry:
    def __init__(self):
        self.metrics: Dict[str, _Metric] = {}
        self._lock = threading.Lock()

    def _register(self, cls: Type[M], name: str, help_text: str, label_names: Optional[Iterable[str]]) -> M:
        with self._lock:
            existing = self.metrics.get(name)
            if existing is None:
                existing = self.metrics[name] = cls(name, help_text, label_names)
            elif not isinstance(existing, cls):
                raise ValueError(f"Metric {name} already registered as {existing.kind}")
            return existing

    def counter(self, name: str, help_text: str = "", label_names: Optional[Iterable[str]] = None) -> Counter:
        return self._register(Counter, name, help_text, label_names)

    def gauge(self, name: str, help_text: str = "", label_names: Optional[Iterable[str]] = None) -> Gauge:
        return self._register(Gauge, name, help_text, label_names)

    def export_prometheus(self) -> str:
        lines: List[str] = []
        for metric in list(self.metrics.values()):
            lines.extend(metric.export())
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        for metric in self.metrics.values():
            metric.reset()


METRICS = MetricsRegistry()

http_requests_total = METRICS.counter(
    "http_requests_total", "HTTP requests by route and status", ["method", "path", "status"]
)
codes_issued_total = METRICS.counter(
    "codes_issued_total", "Compatibility codes issued, split by durability", ["durable"]
)
codes_resolved_total = METRICS.counter(
    "codes_resolved_total", "Code lookups by outcome (ok, not_found, expired)", ["outcome"]
)
store_fallback_total = METRICS.counter(
    "store_fallback_total", "Code store operations served by the local cache", ["operation"]
)
local_cache_codes = METRICS.gauge(
    "local_cache_codes", "Codes currently held only in this instance's local cache"
)
invitations_total = METRICS.counter(
    "invitations_total", "Invitation lifecycle events", ["event"]
)
matches_total = METRICS.counter(
    "matches_total", "Match lifecycle events", ["event"]
)


# Compatibility/invite codes, UUIDs and plain numbers collapse to :id
_ID_SEGMENT = re.compile(r"^(\d+|[0-9a-fA-F-]{32,36}|[0-9A-Za-z]{12})$")


def normalize_path(path: str) -> str:
    """Keep metric label cardinality bounded."""
    segments = [s for s in path.split("/") if s]
    return "/" + "/".join(":id" if _ID_SEGMENT.match(s) else s for s in segments)
