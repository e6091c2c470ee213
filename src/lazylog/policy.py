"""
Interpolation Policy.

The one decision a logging call site makes before handing a message to a
logger: substitute the arguments now (EAGER), or pass template and
arguments separately and let the severity threshold decide whether the
substitution ever happens (DEFERRED).
"""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from lazylog.messages import LazyMessage
from lazylog.styles import FormatStyle, interpolate


class InterpolationPolicy(str, Enum):
    """When template substitution happens."""

    EAGER = "eager"
    DEFERRED = "deferred"


class EmitOutcome(BaseModel):
    """What a single emit() call did.

    Attributes:
        emitted: Whether the logger accepted the record's level
        interpolated_at_call_site: Whether the template was formatted
            before reaching the logger
        policy: Policy the call ran under
        level: Numeric level of the record
    """

    model_config = ConfigDict(frozen=True)

    emitted: bool
    interpolated_at_call_site: bool
    policy: InterpolationPolicy
    level: int = Field(..., ge=0)


def resolve_level(level: int | str) -> int:
    """Resolve a numeric or named logging level.

    Args:
        level: An int, or a level name in any case (e.g. "debug", "WARNING")

    Returns:
        Numeric level

    Raises:
        ValueError: If the name is not a registered level
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown logging level: {level!r}")
    return resolved


def emit(
    logger: logging.Logger | logging.LoggerAdapter,
    level: int | str,
    template: str,
    /,
    *args: Any,
    policy: InterpolationPolicy | str = InterpolationPolicy.DEFERRED,
    style: FormatStyle | str = FormatStyle.PERCENT,
    **kwargs: Any,
) -> EmitOutcome:
    """Log a templated message under the given interpolation policy.

    Args:
        logger: Target logger
        level: Record level
        template: Message template in ``style`` syntax
        *args: Positional template arguments
        policy: EAGER formats before the threshold check, DEFERRED after
        style: Template syntax
        **kwargs: Named template arguments

    Returns:
        EmitOutcome describing whether the record was emitted and where
        the formatting happened
    """
    numeric_level = resolve_level(level)
    policy = InterpolationPolicy(policy)
    style = FormatStyle.parse(style)

    if policy is InterpolationPolicy.EAGER:
        message = interpolate(template, args, kwargs, style=style)
        # Passed as an argument so '%' in the result is not re-interpreted
        logger.log(numeric_level, "%s", message)
        return EmitOutcome(
            emitted=logger.isEnabledFor(numeric_level),
            interpolated_at_call_site=True,
            policy=policy,
            level=numeric_level,
        )

    if not logger.isEnabledFor(numeric_level):
        return EmitOutcome(
            emitted=False,
            interpolated_at_call_site=False,
            policy=policy,
            level=numeric_level,
        )

    if style is FormatStyle.PERCENT and not kwargs:
        logger.log(numeric_level, template, *args)
    elif style is FormatStyle.PERCENT and not args:
        logger.log(numeric_level, template, kwargs)
    else:
        logger.log(numeric_level, LazyMessage(template, args, kwargs, style))
    return EmitOutcome(
        emitted=True,
        interpolated_at_call_site=False,
        policy=policy,
        level=numeric_level,
    )


class PolicyLogger:
    """Logger facade that applies one policy and style to every call.

    Usage:
        log = PolicyLogger(logging.getLogger("app"), policy="deferred", style="{")
        log.debug("Loaded {count} rows from {table}", count=n, table=name)
    """

    def __init__(
        self,
        logger: logging.Logger | logging.LoggerAdapter,
        policy: InterpolationPolicy | str = InterpolationPolicy.DEFERRED,
        style: FormatStyle | str = FormatStyle.PERCENT,
    ) -> None:
        self.logger = logger
        self.policy = InterpolationPolicy(policy)
        self.style = FormatStyle.parse(style)

    def log(self, level: int | str, template: str, /, *args: Any, **kwargs: Any) -> EmitOutcome:
        return emit(
            self.logger,
            level,
            template,
            *args,
            policy=self.policy,
            style=self.style,
            **kwargs,
        )

    def debug(self, template: str, /, *args: Any, **kwargs: Any) -> EmitOutcome:
        return self.log(logging.DEBUG, template, *args, **kwargs)

    def info(self, template: str, /, *args: Any, **kwargs: Any) -> EmitOutcome:
        return self.log(logging.INFO, template, *args, **kwargs)

    def warning(self, template: str, /, *args: Any, **kwargs: Any) -> EmitOutcome:
        return self.log(logging.WARNING, template, *args, **kwargs)

    def error(self, template: str, /, *args: Any, **kwargs: Any) -> EmitOutcome:
        return self.log(logging.ERROR, template, *args, **kwargs)

    def critical(self, template: str, /, *args: Any, **kwargs: Any) -> EmitOutcome:
        return self.log(logging.CRITICAL, template, *args, **kwargs)
