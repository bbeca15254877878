"""Prometheus-style counters and a registry that renders them as text."""

from __future__ import annotations

import threading


def _format_value(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return repr(value)


class Counter:
    """A monotonically increasing counter."""

    def __init__(self, name: str, help: str) -> None:
        self.name = name
        self.help = help
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def inc(self, amount: float = 1) -> None:
        """Increase the counter; counters can never go down."""
        if amount < 0:
            raise ValueError("counter cannot be decreased")
        with self._lock:
            self._value += amount

    def render(self) -> str:
        """Return the counter in the text exposition format."""
        return (
            f"# HELP {self.name} {self.help}\n"
            f"# TYPE {self.name} counter\n"
            f"{self.name} {_format_value(self.value)}\n"
        )


class Registry:
    """A set of uniquely named metrics."""

    def __init__(self) -> None:
        self._metrics: dict[str, Counter] = {}
        self._lock = threading.Lock()

    def register(self, metric: Counter) -> None:
        """Add a metric; a second metric with the same name is an error."""
        with self._lock:
            if metric.name in self._metrics:
                raise ValueError(f"duplicate metric name: {metric.name}")
            self._metrics[metric.name] = metric

    def render(self) -> str:
        """Render every registered metric, sorted by name."""
        with self._lock:
            metrics = sorted(self._metrics.values(), key=lambda m: m.name)
        return "".join(metric.render() for metric in metrics)