"""Tests for untrusted template audit and guarded formatting."""

from datetime import date

import pytest

from lazylog.config.models import SafetyConfig
from lazylog.safety import (
    DEFAULT_MAX_WIDTH,
    FindingKind,
    SafeFormatter,
    UnsafeTemplateError,
    audit_template,
    is_safe,
    parse_format_spec,
    safe_format,
)
from lazylog.styles import FormatStyle


def kinds(findings):
    return [f.kind for f in findings]


class TestParseFormatSpec:
    """Tests for parse_format_spec."""

    def test_full_spec(self):
        """Test a spec using most components."""
        spec = parse_format_spec("*^20,.2f")
        assert spec.fill == "*"
        assert spec.align == "^"
        assert spec.width == "20"
        assert spec.grouping == ","
        assert spec.precision == "2"
        assert spec.type == "f"

    def test_zero_padding(self):
        """Test the zero flag is separated from the width."""
        spec = parse_format_spec("08d")
        assert spec.zero is True
        assert spec.width == "8"

    def test_empty_spec(self):
        """Test that an empty spec parses with nothing set."""
        spec = parse_format_spec("")
        assert spec.width is None
        assert spec.type is None

    def test_invalid_spec(self):
        """Test that a non-standard spec raises ValueError."""
        with pytest.raises(ValueError):
            parse_format_spec("%Y-%m-%d")


class TestSafeFormat:
    """Tests for safe_format and SafeFormatter."""

    def test_plain_template(self):
        """Test that ordinary templates format normally."""
        assert safe_format("Hello, {}!", "World") == "Hello, World!"
        assert safe_format("{name:>6}|{n:.2f}", name="Ada", n=1.5) == "   Ada|1.50"

    def test_attribute_traversal_refused(self):
        """Test that dotted field names are refused."""
        with pytest.raises(UnsafeTemplateError) as exc_info:
            safe_format("{0.__class__}", object())
        assert kinds(exc_info.value.findings) == [FindingKind.ATTRIBUTE_ACCESS]

    def test_index_access_refused(self):
        """Test that bracketed field names are refused."""
        with pytest.raises(UnsafeTemplateError) as exc_info:
            safe_format("{cfg[SECRET_KEY]}", cfg={"SECRET_KEY": "x"})
        assert kinds(exc_info.value.findings) == [FindingKind.INDEX_ACCESS]

    def test_huge_width_refused(self):
        """Test that an oversized width is refused."""
        with pytest.raises(UnsafeTemplateError) as exc_info:
            safe_format("{:>999999999}", "x")
        assert kinds(exc_info.value.findings) == [FindingKind.EXCESSIVE_WIDTH]

    def test_width_beyond_int_parsing_limit(self):
        """Test a width too long for int() is still refused cleanly."""
        template = "{:>" + "9" * 5000 + "}"
        with pytest.raises(UnsafeTemplateError):
            safe_format(template, "x")

    def test_nested_width_checked_after_expansion(self):
        """Test that a width supplied through a nested field is checked."""
        with pytest.raises(UnsafeTemplateError):
            safe_format("{:>{w}}", "x", w=10**9)
        assert safe_format("{:>{w}}", "x", w=3) == "  x"

    def test_huge_precision_refused(self):
        """Test that an oversized precision is refused."""
        with pytest.raises(UnsafeTemplateError) as exc_info:
            safe_format("{:.1000f}", 1.0)
        assert kinds(exc_info.value.findings) == [FindingKind.EXCESSIVE_PRECISION]

    def test_width_at_limit_allowed(self):
        """Test that the limit itself is accepted."""
        result = safe_format("{:>" + str(DEFAULT_MAX_WIDTH) + "}", "x")
        assert len(result) == DEFAULT_MAX_WIDTH

    def test_custom_format_spec(self):
        """Test that non-standard specs such as dates still work."""
        assert safe_format("{:%Y-%m-%d}", date(2024, 5, 1)) == "2024-05-01"

    def test_attribute_access_when_allowed(self):
        """Test that access can be enabled explicitly."""
        formatter = SafeFormatter(allow_attribute_access=True, allow_index_access=True)
        assert formatter.format("{0.real}/{1[k]}", 3, {"k": "v"}) == "3/v"

    def test_from_config(self):
        """Test building a formatter from SafetyConfig."""
        formatter = SafeFormatter.from_config(SafetyConfig(max_width=10))
        assert formatter.format("{:>10}", "x") == " " * 9 + "x"
        with pytest.raises(UnsafeTemplateError):
            formatter.format("{:>11}", "x")

    def test_error_message_lists_findings(self):
        """Test the string form of UnsafeTemplateError."""
        with pytest.raises(UnsafeTemplateError) as exc_info:
            safe_format("{0.__init__.__globals__}", object())
        assert "attribute_access" in str(exc_info.value)

    def test_is_value_error(self):
        """Test that UnsafeTemplateError is a ValueError."""
        assert issubclass(UnsafeTemplateError, ValueError)


class TestAuditBrace:
    """Tests for audit_template with str.format templates."""

    def test_clean(self):
        """Test that a plain template has no findings."""
        assert audit_template("Hello, {name}! {0:>10.2f}") == []
        assert is_safe("Hello, {}!")

    def test_globals_traversal(self):
        """Test the classic __globals__ walk is flagged twice."""
        findings = audit_template("{event.__init__.__globals__[CONFIG][SECRET_KEY]}")
        assert kinds(findings) == [FindingKind.ATTRIBUTE_ACCESS, FindingKind.INDEX_ACCESS]
        assert findings[0].field == "event.__init__.__globals__[CONFIG][SECRET_KEY]"

    def test_positions(self):
        """Test that findings carry the field ordinal."""
        findings = audit_template("{a} {b.c} {d[0]}")
        assert [(f.kind, f.position) for f in findings] == [
            (FindingKind.ATTRIBUTE_ACCESS, 1),
            (FindingKind.INDEX_ACCESS, 2),
        ]

    def test_escaped_braces_ignored(self):
        """Test that doubled braces are literal text."""
        assert audit_template("{{0.__class__}}") == []

    def test_excessive_width(self):
        """Test width above the limit."""
        assert kinds(audit_template("{:>300}")) == [FindingKind.EXCESSIVE_WIDTH]
        assert audit_template("{:>300}", max_width=300) == []

    def test_unknown_conversion(self):
        """Test that a conversion other than r, s or a is malformed."""
        findings = audit_template("{0!x} {1!r}")
        assert kinds(findings) == [FindingKind.MALFORMED]
        assert findings[0].field == "0"
        assert findings[0].position == 0
        assert audit_template("{!s} {!a} {!r}") == []

    def test_nested_spec(self):
        """Test that argument-supplied widths are flagged."""
        assert kinds(audit_template("{:>{width}}")) == [FindingKind.NESTED_SPEC]

    def test_nested_spec_traversal(self):
        """Test traversal inside a nested field is flagged too."""
        assert kinds(audit_template("{:>{w.x}}")) == [
            FindingKind.NESTED_SPEC,
            FindingKind.ATTRIBUTE_ACCESS,
        ]

    def test_malformed(self):
        """Test that unparseable templates are reported, not raised."""
        assert kinds(audit_template("Hello {")) == [FindingKind.MALFORMED]
        assert kinds(audit_template("Hello }")) == [FindingKind.MALFORMED]

    def test_allow_flags(self):
        """Test that allowed access is not reported."""
        assert audit_template("{a.b[c]}", allow_attribute_access=True, allow_index_access=True) == []


class TestAuditPercent:
    """Tests for audit_template with printf-style templates."""

    def test_clean(self):
        """Test ordinary specifiers and escaped percents."""
        assert audit_template("%(name)s is %d%% done, %.2f", style="%") == []

    def test_excessive_width(self):
        """Test a huge width."""
        assert kinds(audit_template("%999999999s", style=FormatStyle.PERCENT)) == [
            FindingKind.EXCESSIVE_WIDTH
        ]

    def test_excessive_precision(self):
        """Test a huge precision."""
        assert kinds(audit_template("%.500f", style="%")) == [FindingKind.EXCESSIVE_PRECISION]

    def test_star_width(self):
        """Test widths taken from arguments."""
        assert kinds(audit_template("%*d", style="%")) == [FindingKind.STAR_WIDTH]
        assert kinds(audit_template("%.*f", style="%")) == [FindingKind.STAR_WIDTH]

    def test_incomplete_specifier(self):
        """Test a dangling percent sign."""
        assert kinds(audit_template("Progress: 100%", style="%")) == [FindingKind.MALFORMED]

    def test_no_attribute_access_in_percent(self):
        """Test that brace traversal syntax means nothing to printf style."""
        assert audit_template("{0.__class__}", style="%") == []


class TestAuditDollar:
    """Tests for audit_template with string.Template templates."""

    def test_clean(self):
        """Test identifiers, braced identifiers and $$."""
        assert audit_template("$name costs $$${price}", style="$") == []

    def test_invalid_placeholder(self):
        """Test a $ not followed by an identifier."""
        assert kinds(audit_template("Cost: $ 5", style="$")) == [FindingKind.MALFORMED]

    def test_nothing_to_traverse(self):
        """Test that brace traversal syntax is inert in $ style."""
        assert audit_template("{0.__class__:>99999}", style="$") == []
