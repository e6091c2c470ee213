"""
Runnable versions of the talk's examples.

Each function returns plain result models so the CLI can render them and
tests can assert on them:

- greetings: the same greeting in all three syntaxes
- threshold_demo: how many times a message is rendered under each policy
  when the record is below the threshold
- injection_demo: attribute traversal reaching a secret through str.format
- padding_demo: an oversized width refused before any padding is built
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, SecretStr

from lazylog.bench import DiscardingHandler
from lazylog.config.environment import EnvironmentConfig, load_environment
from lazylog.policy import InterpolationPolicy, emit, resolve_level
from lazylog.safety import SafeFormatter, TemplateFinding, UnsafeTemplateError, audit_template
from lazylog.styles import FormatStyle, greeting

DEMO_SECRET = "s3cr3t-demo-key"

# Application settings as a module global, reachable from any function
# defined in this module through __globals__
CONFIG: dict[str, Any] = {"SECRET_KEY": DEMO_SECRET, "DEBUG": False}

INJECTION_TEMPLATES = {
    "globals": "Event: {event.__init__.__globals__[CONFIG][SECRET_KEY]}",
    "secret_str": "Settings: {settings.secret_key._secret_value}",
}


class Event:
    """A harmless-looking object handed to a user-supplied template."""

    def __init__(self, name: str) -> None:
        self.name = name


class RenderProbe:
    """Argument that counts how often it is converted to text."""

    def __init__(self, text: str = "probe") -> None:
        self.text = text
        self.renders = 0

    def __str__(self) -> str:
        self.renders += 1
        return self.text

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


class ThresholdRow(BaseModel):
    policy: InterpolationPolicy
    level: str
    threshold: str
    emitted: bool
    renders: int = Field(..., ge=0)


class InjectionOutcome(BaseModel):
    scenario: str
    template: str
    leaked: str | None = None
    refused: bool = False
    error: str | None = None
    findings: list[TemplateFinding] = Field(default_factory=list)


class PaddingOutcome(BaseModel):
    style: FormatStyle
    template: str
    refused: bool
    error: str | None = None
    findings: list[TemplateFinding] = Field(default_factory=list)


def greetings(name: str = "World") -> dict[FormatStyle, str]:
    """Render the greeting in every style."""
    return {style: greeting(name, style) for style in FormatStyle}


def threshold_demo(
    level: int | str = logging.DEBUG,
    threshold: int | str = logging.INFO,
    logger_name: str = "lazylog.demo.threshold",
) -> list[ThresholdRow]:
    """Log one message per policy and count how often it was rendered.

    The demo logger does not propagate. Its DiscardingHandler renders every
    record it receives, the way a real handler would, then drops the text.
    """
    demo_logger = logging.getLogger(logger_name)
    demo_logger.propagate = False
    if not demo_logger.handlers:
        demo_logger.addHandler(DiscardingHandler())
    demo_logger.setLevel(resolve_level(threshold))

    rows = []
    for policy in InterpolationPolicy:
        probe = RenderProbe("World")
        outcome = emit(demo_logger, level, "Hello, %s!", probe, policy=policy)
        rows.append(
            ThresholdRow(
                policy=policy,
                level=logging.getLevelName(outcome.level),
                threshold=logging.getLevelName(demo_logger.level),
                emitted=outcome.emitted,
                renders=probe.renders,
            )
        )
    return rows


def injection_demo(secret: str | None = None) -> list[InjectionOutcome]:
    """Show attribute traversal leaking secrets, and the guarded formatter refusing it.

    Args:
        secret: Secret to plant. Defaults to LAZYLOG_SECRET_KEY when set,
            otherwise DEMO_SECRET

    Returns:
        One outcome per scenario in INJECTION_TEMPLATES
    """
    if not secret:
        env = load_environment()
        secret = env.secret_key.get_secret_value() if env.has_secret_key else DEMO_SECRET
    previous = CONFIG["SECRET_KEY"]
    CONFIG["SECRET_KEY"] = secret
    try:
        values = {
            "event": Event("login"),
            "settings": EnvironmentConfig(secret_key=SecretStr(secret)),
        }
        outcomes = []
        for scenario, template in INJECTION_TEMPLATES.items():
            outcome = InjectionOutcome(
                scenario=scenario,
                template=template,
                leaked=template.format(**values),
                findings=audit_template(template, style=FormatStyle.BRACE),
            )
            try:
                SafeFormatter().format(template, **values)
            except UnsafeTemplateError as e:
                outcome.refused = True
                outcome.error = str(e)
            outcomes.append(outcome)
        return outcomes
    finally:
        CONFIG["SECRET_KEY"] = previous


def padding_demo(width: int = 10**9, max_width: int = 256) -> list[PaddingOutcome]:
    """Audit and attempt an oversized-width template in brace and printf styles.

    Only SafeFormatter is ever asked to format the brace template, and the
    printf template is never formatted at all.
    """
    outcomes = []

    brace_template = f"{{:>{width}}}"
    brace = PaddingOutcome(
        style=FormatStyle.BRACE,
        template=brace_template,
        refused=False,
        findings=audit_template(brace_template, FormatStyle.BRACE, max_width=max_width),
    )
    try:
        SafeFormatter(max_width=max_width).format(brace_template, "x")
    except UnsafeTemplateError as e:
        brace.refused = True
        brace.error = str(e)
    outcomes.append(brace)

    percent_template = f"%{width}s"
    findings = audit_template(percent_template, FormatStyle.PERCENT, max_width=max_width)
    outcomes.append(
        PaddingOutcome(
            style=FormatStyle.PERCENT,
            template=percent_template,
            refused=bool(findings),
            error="Refused by audit" if findings else None,
            findings=findings,
        )
    )
    return outcomes
