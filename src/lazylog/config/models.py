"""
Configuration Data Models.

Defines all configuration schemas using Pydantic for validation
and type safety.
"""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from lazylog.policy import InterpolationPolicy
from lazylog.safety import DEFAULT_MAX_PRECISION, DEFAULT_MAX_WIDTH
from lazylog.styles import FormatStyle


class LogLevel(str, Enum):
    """Logging levels accepted in configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# Default record format for each style, equivalent field for field
DEFAULT_FORMATS: dict[FormatStyle, str] = {
    FormatStyle.PERCENT: "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    FormatStyle.BRACE: "{asctime} - {name} - {levelname} - {message}",
    FormatStyle.DOLLAR: "${asctime} - ${name} - ${levelname} - ${message}",
}


class LoggingConfig(BaseModel):
    """Configuration for the package's own log output.

    Attributes:
        level: Threshold for the lazylog logger
        style: Syntax of the ``format`` string
        format: Record format; defaults to the style's standard layout
        date_format: strftime format for asctime
        file: Optional log file path
        json_output: Emit one JSON object per record
        rich_console: Use rich for console output
    """

    level: LogLevel = Field(
        default=LogLevel.WARNING,
        description="Log level threshold",
    )
    style: FormatStyle = Field(
        default=FormatStyle.PERCENT,
        description="Record format syntax (%, { or $)",
    )
    format: str | None = Field(
        default=None,
        description="Record format string",
    )
    date_format: str | None = Field(
        default=None,
        description="Date format for asctime",
    )
    file: str | None = Field(
        default=None,
        description="Log file path",
    )
    json_output: bool = Field(
        default=False,
        description="Emit JSON records",
    )
    rich_console: bool = Field(
        default=True,
        description="Render console output with rich",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept level names in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("style", mode="before")
    @classmethod
    def normalize_style(cls, v: Any) -> Any:
        """Accept style symbols or names."""
        if isinstance(v, str):
            return FormatStyle.parse(v)
        return v

    @model_validator(mode="after")
    def validate_format_matches_style(self) -> "LoggingConfig":
        """Check the record format actually uses the configured style."""
        if self.format is None:
            return self
        markers = {
            FormatStyle.PERCENT: "%(",
            FormatStyle.BRACE: "{",
            FormatStyle.DOLLAR: "$",
        }
        if markers[self.style] not in self.format:
            raise ValueError(
                f"Format {self.format!r} has no {self.style.value}-style fields"
            )
        return self

    @property
    def effective_format(self) -> str:
        """Record format, falling back to the style's default layout."""
        return self.format or DEFAULT_FORMATS[self.style]


class BenchmarkConfig(BaseModel):
    """Configuration for the logging-call benchmarks.

    Attributes:
        number: Calls per timing run
        repeat: Timing runs per scenario (best is reported)
        threshold: Logger level when measuring the suppressed case
        emit_level: Level of the benchmarked calls
        name: Example value interpolated into the message
        task: Second example value interpolated into the message
    """

    number: int = Field(
        default=100_000,
        ge=1,
        description="Calls per timing run",
    )
    repeat: int = Field(
        default=5,
        ge=1,
        description="Timing runs per scenario",
    )
    threshold: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logger threshold for the suppressed case",
    )
    emit_level: LogLevel = Field(
        default=LogLevel.DEBUG,
        description="Level of benchmarked calls",
    )
    name: str = Field(
        default="World",
        description="Example name",
    )
    task: str = Field(
        default="build-index",
        description="Example task name",
    )

    @model_validator(mode="after")
    def validate_levels(self) -> "BenchmarkConfig":
        """The emitted level must sit below the suppression threshold."""
        order = list(LogLevel)
        if order.index(self.emit_level) >= order.index(self.threshold):
            raise ValueError(
                f"emit_level {self.emit_level.value} must be below threshold "
                f"{self.threshold.value} to measure suppressed calls"
            )
        return self


class SafetyConfig(BaseModel):
    """Limits applied when formatting untrusted templates.

    Attributes:
        max_width: Largest field width accepted
        max_precision: Largest precision accepted
        allow_attribute_access: Permit ``{x.attr}`` fields
        allow_index_access: Permit ``{x[key]}`` fields
    """

    max_width: int = Field(
        default=DEFAULT_MAX_WIDTH,
        ge=0,
        description="Maximum field width",
    )
    max_precision: int = Field(
        default=DEFAULT_MAX_PRECISION,
        ge=0,
        description="Maximum precision",
    )
    allow_attribute_access: bool = Field(
        default=False,
        description="Allow attribute traversal in field names",
    )
    allow_index_access: bool = Field(
        default=False,
        description="Allow indexing in field names",
    )


class LazylogConfig(BaseModel):
    """Root configuration.

    Attributes:
        logging: Log output configuration
        benchmark: Benchmark configuration
        safety: Untrusted template limits
        policy: Default interpolation policy
        debug: Enable debug mode
    """

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
    benchmark: BenchmarkConfig = Field(
        default_factory=BenchmarkConfig,
        description="Benchmark configuration",
    )
    safety: SafetyConfig = Field(
        default_factory=SafetyConfig,
        description="Template safety limits",
    )
    policy: InterpolationPolicy = Field(
        default=InterpolationPolicy.DEFERRED,
        description="Default interpolation policy",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    @model_validator(mode="after")
    def apply_debug_level(self) -> "LazylogConfig":
        """Debug mode lowers the log level to DEBUG."""
        if self.debug:
            self.logging.level = LogLevel.DEBUG
        return self

    def to_yaml_dict(self) -> dict[str, Any]:
        """Convert to YAML-friendly dictionary.

        Returns:
            Dict suitable for YAML serialization
        """
        return self.model_dump(mode="json", exclude_none=True)

    def log_file_path(self) -> Path | None:
        """Get the log file as a Path, if one is configured."""
        return Path(self.logging.file) if self.logging.file else None
