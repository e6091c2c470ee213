"""
Untrusted Template Audit and Guarded Formatting.

``str.format`` is powerful enough to be dangerous when the *template*
comes from outside:

- attribute and index access in field names (``{0.__init__.__globals__}``)
  can walk from any argument to module globals, configuration and secrets
- an attacker-chosen width (``{:>999999999}``) makes the formatter allocate
  that many characters of padding, stalling or exhausting the process

printf-style templates have the second problem (``%999999999s`` and ``*``
widths) but not the first. ``string.Template`` has neither.

This module provides a static audit that reports both kinds of problem
without formatting anything, and a ``string.Formatter`` subclass that
refuses them at format time.
"""

import re
from enum import Enum
from string import Formatter, Template
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from lazylog.styles import FormatStyle

if TYPE_CHECKING:
    from lazylog.config.models import SafetyConfig

DEFAULT_MAX_WIDTH = 256
DEFAULT_MAX_PRECISION = 64

# Standard format-spec mini-language:
# [[fill]align][sign][z][#][0][width][grouping][.precision][type]
_FORMAT_SPEC_PATTERN = re.compile(
    r"(?:(?P<fill>.)?(?P<align>[<>=^]))?"
    r"(?P<sign>[-+ ])?"
    r"(?P<no_neg_zero>z)?"
    r"(?P<alternate>\#)?"
    r"(?P<zero>0)?"
    r"(?P<width>\d+)?"
    r"(?P<grouping>[,_])?"
    r"(?:\.(?P<precision>\d+))?"
    r"(?P<type>[bcdeEfFgGnosxX%])?",
    re.DOTALL,
)

# printf-style conversion specifier
_PERCENT_PATTERN = re.compile(
    r"%(?:\((?P<key>[^)]*)\))?"
    r"(?P<flags>[#0\- +]*)"
    r"(?P<width>\*|\d+)?"
    r"(?:\.(?P<precision>\*|\d+))?"
    r"[hlL]?"
    r"(?P<type>[diouxXeEfFgGcrsa%])"
)

_DIGITS = re.compile(r"\d+")

# Conversions str.format understands after "!"
_CONVERSIONS = frozenset({None, "r", "s", "a"})


class FindingKind(str, Enum):
    """Categories of unsafe template constructs."""

    ATTRIBUTE_ACCESS = "attribute_access"
    INDEX_ACCESS = "index_access"
    EXCESSIVE_WIDTH = "excessive_width"
    EXCESSIVE_PRECISION = "excessive_precision"
    NESTED_SPEC = "nested_spec"
    STAR_WIDTH = "star_width"
    MALFORMED = "malformed"


class TemplateFinding(BaseModel):
    """A single unsafe construct found in a template.

    Attributes:
        kind: Category of the problem
        field: The replacement field (or printf specifier) involved
        detail: Human readable explanation
        position: Ordinal of the replacement field in the template
    """

    kind: FindingKind
    field: str = ""
    detail: str
    position: int = Field(default=0, ge=0)


class FormatSpec(BaseModel):
    """Parsed standard format specification."""

    fill: str | None = None
    align: str | None = None
    sign: str | None = None
    no_neg_zero: bool = False
    alternate: bool = False
    zero: bool = False
    width: str | None = Field(default=None, description="Width digits, kept as text")
    grouping: str | None = None
    precision: str | None = Field(default=None, description="Precision digits, kept as text")
    type: str | None = None


class UnsafeTemplateError(ValueError):
    """Raised when a template contains constructs the formatter refuses."""

    def __init__(self, message: str, findings: list[TemplateFinding] | None = None) -> None:
        super().__init__(message)
        self.findings = findings or []

    def __str__(self) -> str:
        msg = super().__str__()
        if self.findings:
            details = [f"  - {f.kind.value}: {f.detail}" for f in self.findings[:5]]
            if len(self.findings) > 5:
                details.append(f"  ... and {len(self.findings) - 5} more findings")
            msg = f"{msg}\n" + "\n".join(details)
        return msg


def parse_format_spec(spec: str) -> FormatSpec:
    """Parse a standard format specification.

    Args:
        spec: Spec text after the ``:`` of a replacement field

    Returns:
        FormatSpec with the recognised components

    Raises:
        ValueError: If the spec is not in the standard mini-language
    """
    match = _FORMAT_SPEC_PATTERN.fullmatch(spec)
    if match is None:
        raise ValueError(f"Not a standard format spec: {spec!r}")
    parts = match.groupdict()
    return FormatSpec(
        fill=parts["fill"],
        align=parts["align"],
        sign=parts["sign"],
        no_neg_zero=parts["no_neg_zero"] is not None,
        alternate=parts["alternate"] is not None,
        zero=parts["zero"] is not None,
        width=parts["width"],
        grouping=parts["grouping"],
        precision=parts["precision"],
        type=parts["type"],
    )


def _exceeds(digits: str, limit: int) -> bool:
    # Compare by length first; int() refuses very long digit strings
    significant = digits.lstrip("0")
    if len(significant) > len(str(limit)):
        return True
    return int(significant or "0") > limit


def _field_findings(
    field_name: str,
    position: int,
    allow_attribute_access: bool = False,
    allow_index_access: bool = False,
) -> list[TemplateFinding]:
    findings = []
    has_attribute = has_index = False
    i = min((p for p in (field_name.find("."), field_name.find("[")) if p != -1), default=-1)
    while 0 <= i < len(field_name):
        if field_name[i] == ".":
            has_attribute = True
            nexts = [p for p in (field_name.find(".", i + 1), field_name.find("[", i + 1)) if p != -1]
            i = min(nexts, default=len(field_name))
        elif field_name[i] == "[":
            has_index = True
            close = field_name.find("]", i)
            if close == -1:
                findings.append(
                    TemplateFinding(
                        kind=FindingKind.MALFORMED,
                        field=field_name,
                        detail=f"Unclosed '[' in field {field_name!r}",
                        position=position,
                    )
                )
                break
            i = close + 1
        else:
            findings.append(
                TemplateFinding(
                    kind=FindingKind.MALFORMED,
                    field=field_name,
                    detail=f"Unexpected {field_name[i]!r} in field {field_name!r}",
                    position=position,
                )
            )
            break

    if has_attribute and not allow_attribute_access:
        findings.append(
            TemplateFinding(
                kind=FindingKind.ATTRIBUTE_ACCESS,
                field=field_name,
                detail=f"Field {field_name!r} reads attributes of its argument",
                position=position,
            )
        )
    if has_index and not allow_index_access:
        findings.append(
            TemplateFinding(
                kind=FindingKind.INDEX_ACCESS,
                field=field_name,
                detail=f"Field {field_name!r} indexes into its argument",
                position=position,
            )
        )
    return findings


def _spec_findings(
    spec: str,
    field: str,
    position: int,
    max_width: int,
    max_precision: int,
) -> list[TemplateFinding]:
    findings = []
    try:
        parsed = parse_format_spec(spec)
    except ValueError:
        # Custom __format__ specs (dates, decimals): any number is suspect
        limit = max(max_width, max_precision)
        for digits in _DIGITS.findall(spec):
            if _exceeds(digits, limit):
                findings.append(
                    TemplateFinding(
                        kind=FindingKind.EXCESSIVE_WIDTH,
                        field=field,
                        detail=f"Number {_abbreviate(digits)} in format spec exceeds {limit}",
                        position=position,
                    )
                )
                break
        return findings

    if parsed.width and _exceeds(parsed.width, max_width):
        findings.append(
            TemplateFinding(
                kind=FindingKind.EXCESSIVE_WIDTH,
                field=field,
                detail=f"Width {_abbreviate(parsed.width)} exceeds the limit of {max_width}",
                position=position,
            )
        )
    if parsed.precision and _exceeds(parsed.precision, max_precision):
        findings.append(
            TemplateFinding(
                kind=FindingKind.EXCESSIVE_PRECISION,
                field=field,
                detail=f"Precision {_abbreviate(parsed.precision)} exceeds the limit of {max_precision}",
                position=position,
            )
        )
    return findings


def _abbreviate(digits: str) -> str:
    return digits if len(digits) <= 12 else f"{digits[:12]}... ({len(digits)} digits)"


def _audit_brace(
    template: str,
    max_width: int,
    max_precision: int,
    allow_attribute_access: bool,
    allow_index_access: bool,
) -> list[TemplateFinding]:
    findings: list[TemplateFinding] = []
    formatter = Formatter()
    position = 0
    try:
        for _literal, field_name, spec, conversion in formatter.parse(template):
            if field_name is None:
                continue
            findings.extend(
                _field_findings(field_name, position, allow_attribute_access, allow_index_access)
            )
            # parse() accepts any single character after '!'
            if conversion not in _CONVERSIONS:
                findings.append(
                    TemplateFinding(
                        kind=FindingKind.MALFORMED,
                        field=field_name,
                        detail=f"Unknown conversion '!{conversion}'",
                        position=position,
                    )
                )
            if spec and "{" in spec:
                findings.append(
                    TemplateFinding(
                        kind=FindingKind.NESTED_SPEC,
                        field=field_name,
                        detail=f"Format spec {spec!r} takes its value from an argument",
                        position=position,
                    )
                )
                for _inner_literal, inner, _, _ in formatter.parse(spec):
                    if inner is not None:
                        findings.extend(
                            _field_findings(
                                inner, position, allow_attribute_access, allow_index_access
                            )
                        )
            elif spec:
                findings.extend(
                    _spec_findings(spec, field_name, position, max_width, max_precision)
                )
            position += 1
    except ValueError as e:
        findings.append(
            TemplateFinding(
                kind=FindingKind.MALFORMED,
                detail=f"Template does not parse: {e}",
                position=position,
            )
        )
    return findings


def _audit_percent(template: str, max_width: int, max_precision: int) -> list[TemplateFinding]:
    findings: list[TemplateFinding] = []
    covered: set[int] = set()
    position = 0
    for match in _PERCENT_PATTERN.finditer(template):
        covered.update(range(match.start(), match.end()))
        if match.group(0) == "%%":
            continue
        spec = match.group(0)
        width = match.group("width")
        precision = match.group("precision")
        if width == "*" or precision == "*":
            findings.append(
                TemplateFinding(
                    kind=FindingKind.STAR_WIDTH,
                    field=spec,
                    detail=f"Specifier {spec!r} takes its width or precision from an argument",
                    position=position,
                )
            )
        if width and width != "*" and _exceeds(width, max_width):
            findings.append(
                TemplateFinding(
                    kind=FindingKind.EXCESSIVE_WIDTH,
                    field=_abbreviate(spec),
                    detail=f"Width {_abbreviate(width)} exceeds the limit of {max_width}",
                    position=position,
                )
            )
        if precision and precision != "*" and _exceeds(precision, max_precision):
            findings.append(
                TemplateFinding(
                    kind=FindingKind.EXCESSIVE_PRECISION,
                    field=_abbreviate(spec),
                    detail=f"Precision {_abbreviate(precision)} exceeds the limit of {max_precision}",
                    position=position,
                )
            )
        position += 1

    for index, char in enumerate(template):
        if char == "%" and index not in covered:
            findings.append(
                TemplateFinding(
                    kind=FindingKind.MALFORMED,
                    field=template[index : index + 3],
                    detail=f"Incomplete format specifier at offset {index}",
                    position=position,
                )
            )
            break
    return findings


def _audit_dollar(template: str) -> list[TemplateFinding]:
    findings = []
    for match in Template.pattern.finditer(template):
        if match.group("invalid") is not None:
            offset = match.start("invalid")
            findings.append(
                TemplateFinding(
                    kind=FindingKind.MALFORMED,
                    field=template[offset : offset + 3],
                    detail=f"Invalid placeholder at offset {offset}",
                )
            )
    return findings


def audit_template(
    template: str,
    style: FormatStyle | str = FormatStyle.BRACE,
    max_width: int = DEFAULT_MAX_WIDTH,
    max_precision: int = DEFAULT_MAX_PRECISION,
    allow_attribute_access: bool = False,
    allow_index_access: bool = False,
) -> list[TemplateFinding]:
    """Statically inspect a template for unsafe constructs.

    Nothing is formatted; the template is only parsed.

    Args:
        template: Template text, possibly attacker controlled
        style: Syntax the template will be formatted with
        max_width: Largest acceptable field width
        max_precision: Largest acceptable precision
        allow_attribute_access: Accept ``{x.attr}`` fields
        allow_index_access: Accept ``{x[key]}`` fields

    Returns:
        List of findings, empty when the template is safe
    """
    style = FormatStyle.parse(style)
    if style is FormatStyle.BRACE:
        return _audit_brace(
            template, max_width, max_precision, allow_attribute_access, allow_index_access
        )
    if style is FormatStyle.PERCENT:
        return _audit_percent(template, max_width, max_precision)
    return _audit_dollar(template)


def is_safe(template: str, style: FormatStyle | str = FormatStyle.BRACE, **limits: Any) -> bool:
    """Return True when audit_template finds nothing."""
    return not audit_template(template, style=style, **limits)


class SafeFormatter(Formatter):
    """``str.format`` replacement that refuses traversal and oversized padding.

    Field names are checked before any lookup happens, and format specs are
    checked after nested fields are expanded but before the value is
    formatted, so a rejected width never allocates its padding.

    Usage:
        formatter = SafeFormatter(max_width=80)
        formatter.format("Hello, {}!", user_supplied_name)
    """

    def __init__(
        self,
        max_width: int = DEFAULT_MAX_WIDTH,
        max_precision: int = DEFAULT_MAX_PRECISION,
        allow_attribute_access: bool = False,
        allow_index_access: bool = False,
    ) -> None:
        super().__init__()
        self.max_width = max_width
        self.max_precision = max_precision
        self.allow_attribute_access = allow_attribute_access
        self.allow_index_access = allow_index_access
        self._position = 0

    @classmethod
    def from_config(cls, config: "SafetyConfig") -> "SafeFormatter":
        """Build a formatter from the ``safety`` configuration section."""
        return cls(
            max_width=config.max_width,
            max_precision=config.max_precision,
            allow_attribute_access=config.allow_attribute_access,
            allow_index_access=config.allow_index_access,
        )

    def vformat(self, format_string: str, args: Any, kwargs: Any) -> str:
        self._position = 0
        return super().vformat(format_string, args, kwargs)

    def get_field(self, field_name: str, args: Any, kwargs: Any) -> Any:
        findings = _field_findings(
            field_name,
            self._position,
            self.allow_attribute_access,
            self.allow_index_access,
        )
        if findings:
            raise UnsafeTemplateError(f"Refused field {field_name!r}", findings)
        self._position += 1
        return super().get_field(field_name, args, kwargs)

    def format_field(self, value: Any, format_spec: str) -> Any:
        if format_spec:
            findings = _spec_findings(
                format_spec,
                field="",
                position=max(self._position - 1, 0),
                max_width=self.max_width,
                max_precision=self.max_precision,
            )
            if findings:
                raise UnsafeTemplateError(
                    f"Refused format spec {_abbreviate(format_spec)!r}", findings
                )
        return super().format_field(value, format_spec)


def safe_format(template: str, /, *args: Any, **kwargs: Any) -> str:
    """Format an untrusted brace template with the default SafeFormatter limits.

    Raises:
        UnsafeTemplateError: If the template traverses attributes or indexes,
            or asks for a width or precision above the defaults
    """
    return SafeFormatter().format(template, *args, **kwargs)
