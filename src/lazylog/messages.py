"""
Deferred Message Objects.

Ways to hand a template and its arguments to ``logging`` so that the
substitution only happens once a handler actually needs the text:

- LazyMessage: an object whose ``__str__`` interpolates on demand
- StyleAdapter: a LoggerAdapter that wraps calls in LazyMessage after the
  threshold check, giving ``{}``/``$`` templates the same laziness that
  ``%`` templates get from the logger itself
- StyledLogRecord: a LogRecord subclass whose ``getMessage`` understands
  the configured style, installed through the record factory

Example:
    log = StyleAdapter(logging.getLogger(__name__), style="{")
    log.debug("Task {task} finished in {elapsed:.2f}s", task=name, elapsed=t)
"""

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from lazylog.styles import FormatStyle, interpolate

# Keyword arguments consumed by Logger._log rather than by the template
_LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})


class LazyMessage:
    """A template and its arguments, interpolated when converted to str.

    The result is not cached: every ``str()`` call renders again and bumps
    ``render_count``, which makes the number of formatting passes observable.
    """

    style: FormatStyle = FormatStyle.BRACE

    def __init__(
        self,
        template: str,
        args: tuple[Any, ...] = (),
        kwargs: Mapping[str, Any] | None = None,
        style: FormatStyle | str | None = None,
    ) -> None:
        self.template = template
        self.args = tuple(args)
        self.kwargs = dict(kwargs or {})
        if style is not None:
            self.style = FormatStyle.parse(style)
        self.render_count = 0

    def __str__(self) -> str:
        self.render_count += 1
        return interpolate(self.template, self.args, self.kwargs, style=self.style)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.template!r}, args={self.args!r}, "
            f"kwargs={self.kwargs!r}, style={self.style.value!r})"
        )


class BraceMessage(LazyMessage):
    """LazyMessage fixed to ``str.format`` syntax."""

    style = FormatStyle.BRACE

    def __init__(self, template: str, /, *args: Any, **kwargs: Any) -> None:
        super().__init__(template, args, kwargs)


class DollarMessage(LazyMessage):
    """LazyMessage fixed to ``string.Template`` syntax."""

    style = FormatStyle.DOLLAR

    def __init__(self, template: str, /, **kwargs: Any) -> None:
        super().__init__(template, (), kwargs)


class StyleAdapter(logging.LoggerAdapter):
    """Logger adapter accepting ``{}`` or ``$`` templates with deferred formatting.

    Positional arguments and any keyword arguments other than the ones
    ``logging`` itself consumes (exc_info, stack_info, stacklevel, extra)
    are kept for the template. Nothing is wrapped, let alone formatted,
    when the level is below the logger's threshold.
    """

    def __init__(
        self,
        logger: logging.Logger,
        style: FormatStyle | str = FormatStyle.BRACE,
        extra: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(logger, dict(extra or {}))
        self.style = FormatStyle.parse(style)

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        # Per-call extra wins over the adapter's own
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def log(self, level: int, msg: str, /, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        log_kwargs = {key: kwargs.pop(key) for key in list(kwargs) if key in _LOGGING_KWARGS}
        # Skip this frame so the record points at the caller
        log_kwargs["stacklevel"] = log_kwargs.get("stacklevel", 1) + 1
        msg, log_kwargs = self.process(msg, log_kwargs)
        self.logger.log(level, LazyMessage(msg, args, kwargs, self.style), **log_kwargs)

    # msg is positional-only so a template field may be named msg.
    # Each level method is one more frame between the caller and log().

    def debug(self, msg: str, /, *args: Any, **kwargs: Any) -> None:
        kwargs["stacklevel"] = kwargs.get("stacklevel", 1) + 1
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, /, *args: Any, **kwargs: Any) -> None:
        kwargs["stacklevel"] = kwargs.get("stacklevel", 1) + 1
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, /, *args: Any, **kwargs: Any) -> None:
        kwargs["stacklevel"] = kwargs.get("stacklevel", 1) + 1
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, /, *args: Any, **kwargs: Any) -> None:
        kwargs["stacklevel"] = kwargs.get("stacklevel", 1) + 1
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, /, *args: Any, exc_info: Any = True, **kwargs: Any) -> None:
        kwargs["stacklevel"] = kwargs.get("stacklevel", 1) + 1
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def critical(self, msg: str, /, *args: Any, **kwargs: Any) -> None:
        kwargs["stacklevel"] = kwargs.get("stacklevel", 1) + 1
        self.log(logging.CRITICAL, msg, *args, **kwargs)


class StyledLogRecord(logging.LogRecord):
    """LogRecord whose getMessage interpolates with a configurable style.

    The style is set per record by the factory installed with
    ``use_record_style``. Records from third-party libraries go through the
    same factory, so a non-``%`` style should only be installed where every
    logging call in scope uses it.
    """

    style: FormatStyle = FormatStyle.PERCENT

    def getMessage(self) -> str:
        msg = str(self.msg)
        if not self.args:
            return msg
        if isinstance(self.args, Mapping):
            return interpolate(msg, kwargs=self.args, style=self.style)
        return interpolate(msg, self.args, style=self.style)


def _styled_factory(style: FormatStyle) -> Callable[..., logging.LogRecord]:
    def factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
        record = StyledLogRecord(*args, **kwargs)
        record.style = style
        return record

    factory.style = style  # type: ignore[attr-defined]
    return factory


_factory_stack: list[Callable[..., logging.LogRecord]] = []


def install_record_style(style: FormatStyle | str) -> None:
    """Make every new LogRecord a StyledLogRecord with the given style.

    The previous factory is pushed on a stack and comes back with
    ``restore_record_factory``.
    """
    _factory_stack.append(logging.getLogRecordFactory())
    logging.setLogRecordFactory(_styled_factory(FormatStyle.parse(style)))


def restore_record_factory() -> None:
    """Reinstate the record factory active before the last install."""
    if not _factory_stack:
        raise RuntimeError("No record factory to restore. Call install_record_style() first.")
    logging.setLogRecordFactory(_factory_stack.pop())


@contextmanager
def use_record_style(style: FormatStyle | str) -> Iterator[FormatStyle]:
    """Install a styled record factory for the duration of a ``with`` block."""
    resolved = FormatStyle.parse(style)
    install_record_style(resolved)
    try:
        yield resolved
    finally:
        restore_record_factory()
