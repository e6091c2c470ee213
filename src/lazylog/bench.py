"""
Logging-Call Benchmarks.

Measures what a single logging call costs under each interpolation
technique, both when the record passes the logger's threshold and when it
is suppressed. Suppressed calls are where deferred techniques win: the
record is dropped before any string is built.

Every benchmark logger is isolated (no propagation) and writes to a
DiscardingHandler, which formats the record completely and throws the text
away, so an enabled call pays the full formatting cost without any I/O.
"""

from __future__ import annotations

import logging
import platform
import statistics
import timeit
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from lazylog.config.models import BenchmarkConfig
from lazylog.messages import StyleAdapter
from lazylog.policy import resolve_level
from lazylog.styles import FormatStyle

logger = logging.getLogger(__name__)


class Technique(str, Enum):
    """Ways of producing a log message at the call site."""

    FSTRING = "fstring"
    PERCENT_EAGER = "percent_eager"
    FORMAT_EAGER = "format_eager"
    PERCENT_DEFERRED = "percent_deferred"
    BRACE_ADAPTER = "brace_adapter"
    GUARDED = "guarded"

    @property
    def deferred(self) -> bool:
        """Whether suppressed calls skip interpolation entirely."""
        return self in (Technique.PERCENT_DEFERRED, Technique.BRACE_ADAPTER, Technique.GUARDED)


class DiscardingHandler(logging.Handler):
    """Handler that formats each record, then discards the text.

    Attributes:
        handled: Number of records formatted so far
    """

    def __init__(self, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.handled = 0

    def emit(self, record: logging.LogRecord) -> None:
        self.format(record)
        self.handled += 1


class BenchmarkResult(BaseModel):
    """Timing of one technique in one threshold state.

    Attributes:
        technique: Technique measured
        enabled: Whether the call's level passed the threshold
        number: Calls per timing run
        repeat: Number of timing runs
        best_seconds: Fastest run, in seconds for ``number`` calls
        mean_seconds: Mean run time
    """

    technique: Technique
    enabled: bool
    number: int = Field(..., ge=1)
    repeat: int = Field(..., ge=1)
    best_seconds: float = Field(..., ge=0.0)
    mean_seconds: float = Field(..., ge=0.0)

    @computed_field
    @property
    def per_call_ns(self) -> float:
        """Best-run cost of a single call in nanoseconds."""
        return self.best_seconds / self.number * 1e9


class BenchmarkReport(BaseModel):
    """All results from one benchmark session."""

    results: list[BenchmarkResult] = Field(default_factory=list)
    python_version: str = Field(default_factory=platform.python_version)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    config: BenchmarkConfig = Field(default_factory=BenchmarkConfig)

    def result(self, technique: Technique | str, enabled: bool) -> BenchmarkResult:
        """Look up the result for a technique and threshold state.

        Raises:
            KeyError: If that combination was not measured
        """
        technique = Technique(technique)
        for item in self.results:
            if item.technique is technique and item.enabled is enabled:
                return item
        state = "enabled" if enabled else "suppressed"
        raise KeyError(f"No result for {technique.value} ({state})")

    def _matching(self, enabled: bool) -> list[BenchmarkResult]:
        matching = [r for r in self.results if r.enabled is enabled]
        if not matching:
            state = "enabled" if enabled else "suppressed"
            raise ValueError(f"No {state} results in report")
        return matching

    def fastest(self, enabled: bool) -> BenchmarkResult:
        return min(self._matching(enabled), key=lambda r: r.per_call_ns)

    def slowest(self, enabled: bool) -> BenchmarkResult:
        return max(self._matching(enabled), key=lambda r: r.per_call_ns)

    def speedup(
        self,
        technique: Technique | str,
        baseline: Technique | str = Technique.FSTRING,
        enabled: bool = False,
    ) -> float:
        """How many times faster ``technique`` is than ``baseline``."""
        measured = self.result(technique, enabled)
        reference = self.result(baseline, enabled)
        if measured.best_seconds == 0:
            return float("inf")
        return reference.best_seconds / measured.best_seconds

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(indent=indent)


def make_scenario(
    technique: Technique | str,
    target: logging.Logger,
    level: int,
    name: str,
    task: str,
) -> Callable[[], None]:
    """Build a zero-argument callable performing one logging call.

    Args:
        technique: How the message is produced
        target: Logger to call
        level: Level of the call
        name: First interpolated value
        task: Second interpolated value

    Returns:
        Callable suitable for timeit
    """
    technique = Technique(technique)

    if technique is Technique.FSTRING:

        def scenario() -> None:
            target.log(level, f"Hello, {name}! Task {task} started")

    elif technique is Technique.PERCENT_EAGER:

        def scenario() -> None:
            target.log(level, "Hello, %s! Task %s started" % (name, task))

    elif technique is Technique.FORMAT_EAGER:

        def scenario() -> None:
            target.log(level, "Hello, {}! Task {} started".format(name, task))

    elif technique is Technique.PERCENT_DEFERRED:

        def scenario() -> None:
            target.log(level, "Hello, %s! Task %s started", name, task)

    elif technique is Technique.BRACE_ADAPTER:
        adapter = StyleAdapter(target, style=FormatStyle.BRACE)

        def scenario() -> None:
            adapter.log(level, "Hello, {}! Task {} started", name, task)

    else:

        def scenario() -> None:
            if target.isEnabledFor(level):
                target.log(level, f"Hello, {name}! Task {task} started")

    return scenario


def _isolated_logger(technique: Technique) -> tuple[logging.Logger, DiscardingHandler]:
    bench_logger = logging.getLogger(f"lazylog.bench.run.{technique.value}")
    bench_logger.propagate = False
    for handler in list(bench_logger.handlers):
        bench_logger.removeHandler(handler)
    handler = DiscardingHandler()
    bench_logger.addHandler(handler)
    return bench_logger, handler


def run_benchmark(
    technique: Technique | str,
    enabled: bool,
    config: BenchmarkConfig | None = None,
) -> BenchmarkResult:
    """Time one technique in one threshold state.

    Args:
        technique: Technique to measure
        enabled: True to measure calls that pass the threshold
        config: Benchmark settings

    Returns:
        BenchmarkResult with best and mean timings
    """
    technique = Technique(technique)
    config = config or BenchmarkConfig()
    emit_level = resolve_level(config.emit_level.value)
    threshold = resolve_level(config.threshold.value)

    bench_logger, handler = _isolated_logger(technique)
    bench_logger.setLevel(emit_level if enabled else threshold)

    scenario = make_scenario(technique, bench_logger, emit_level, config.name, config.task)
    timings = timeit.Timer(scenario).repeat(repeat=config.repeat, number=config.number)

    result = BenchmarkResult(
        technique=technique,
        enabled=enabled,
        number=config.number,
        repeat=config.repeat,
        best_seconds=min(timings),
        mean_seconds=statistics.mean(timings),
    )
    logger.debug(
        "%s (%s): %.1f ns/call, %d records formatted",
        technique.value,
        "enabled" if enabled else "suppressed",
        result.per_call_ns,
        handler.handled,
    )
    return result


def run_benchmarks(
    config: BenchmarkConfig | None = None,
    techniques: Iterable[Technique | str] | None = None,
    on_result: Callable[[BenchmarkResult], None] | None = None,
) -> BenchmarkReport:
    """Run every requested technique with the threshold passing and suppressing.

    Args:
        config: Benchmark settings
        techniques: Techniques to run (all when None)
        on_result: Called after each measurement, e.g. to advance a progress bar

    Returns:
        BenchmarkReport holding every result
    """
    config = config or BenchmarkConfig()
    selected = [Technique(t) for t in techniques] if techniques else list(Technique)
    report = BenchmarkReport(config=config)

    logger.info(
        "Running %d techniques x 2 threshold states (number=%d, repeat=%d)",
        len(selected),
        config.number,
        config.repeat,
    )
    for technique in selected:
        for enabled in (True, False):
            result = run_benchmark(technique, enabled, config)
            report.results.append(result)
            if on_result is not None:
                on_result(result)
    return report
