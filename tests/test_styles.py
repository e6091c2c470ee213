"""Tests for interpolation syntaxes."""

import logging

import pytest

from lazylog.styles import GREETING_TEMPLATES, FormatStyle, StyleError, greeting, interpolate


class TestFormatStyle:
    """Tests for FormatStyle parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("%", FormatStyle.PERCENT),
            ("percent", FormatStyle.PERCENT),
            ("{", FormatStyle.BRACE),
            ("Brace", FormatStyle.BRACE),
            ("format", FormatStyle.BRACE),
            ("$", FormatStyle.DOLLAR),
            ("template", FormatStyle.DOLLAR),
            (FormatStyle.DOLLAR, FormatStyle.DOLLAR),
        ],
    )
    def test_parse_accepts_symbols_and_names(self, value, expected):
        """Test that symbols, names and members all resolve."""
        assert FormatStyle.parse(value) is expected

    def test_parse_unknown_style(self):
        """Test that an unknown style raises ValueError."""
        with pytest.raises(ValueError, match="Unknown format style"):
            FormatStyle.parse("fstring")

    @pytest.mark.parametrize("style", list(FormatStyle))
    def test_values_accepted_by_logging_formatter(self, style):
        """Test that enum values are valid logging.Formatter styles."""
        fmt = {"%": "%(message)s", "{": "{message}", "$": "${message}"}[style.value]
        formatter = logging.Formatter(fmt, style=style.value)
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "hello", None, None)
        assert formatter.format(record) == "hello"


class TestGreeting:
    """The greeting example renders identically in every style."""

    @pytest.mark.parametrize("style", list(FormatStyle))
    def test_greeting_literal(self, style):
        """Test that each style yields the literal expected greeting."""
        assert greeting("World", style) == "Hello, World!"

    def test_every_style_has_a_template(self):
        """Test that the template table covers all styles."""
        assert set(GREETING_TEMPLATES) == set(FormatStyle)


class TestPercentStyle:
    """Tests for printf-style interpolation."""

    def test_positional(self):
        """Test positional arguments."""
        assert interpolate("Task %s took %.1fs", ("index", 2.5)) == "Task index took 2.5s"

    def test_no_args_returns_template_unchanged(self):
        """Test that a template without arguments is not interpreted."""
        assert interpolate("100% done") == "100% done"

    def test_single_mapping_argument(self):
        """Test that a lone mapping argument is used as the mapping."""
        assert interpolate("Hello, %(name)s!", ({"name": "Ada"},)) == "Hello, Ada!"

    def test_kwargs_as_mapping(self):
        """Test keyword arguments act as the mapping."""
        assert interpolate("Hello, %(name)s!", kwargs={"name": "Ada"}) == "Hello, Ada!"

    def test_args_and_kwargs_rejected(self):
        """Test that mixing args and kwargs fails."""
        with pytest.raises(StyleError):
            interpolate("%s %(name)s", ("x",), {"name": "y"})

    def test_mapping_argument_and_kwargs_rejected(self):
        """Test that named values are not dropped next to a mapping argument."""
        with pytest.raises(StyleError, match="either args or a mapping"):
            interpolate("%(a)s %(b)s", ({"a": 1},), {"b": 2})

    def test_too_few_args(self):
        """Test that missing arguments raise StyleError chained from TypeError."""
        with pytest.raises(StyleError) as exc_info:
            interpolate("%s and %s", ("one",))
        assert isinstance(exc_info.value.__cause__, TypeError)
        assert exc_info.value.style is FormatStyle.PERCENT


class TestBraceStyle:
    """Tests for str.format interpolation."""

    def test_positional_and_named(self):
        """Test positional and keyword fields together."""
        result = interpolate("{0} ran {task}", ("worker",), {"task": "sync"}, style="{")
        assert result == "worker ran sync"

    def test_format_spec(self):
        """Test that format specs are applied."""
        assert interpolate("{:>5}|", ("ab",), style=FormatStyle.BRACE) == "   ab|"

    def test_missing_key(self):
        """Test that a missing field raises StyleError chained from KeyError."""
        with pytest.raises(StyleError) as exc_info:
            interpolate("{name}", style="{")
        assert isinstance(exc_info.value.__cause__, KeyError)


class TestDollarStyle:
    """Tests for string.Template interpolation."""

    def test_named(self):
        """Test named substitution."""
        assert interpolate("$who likes ${what}", kwargs={"who": "tim", "what": "kung pao"}, style="$") == (
            "tim likes kung pao"
        )

    def test_mapping_argument(self):
        """Test a mapping passed positionally."""
        assert interpolate("Hi $name", ({"name": "Ada"},), style="$") == "Hi Ada"

    def test_positional_rejected(self):
        """Test that positional values are rejected."""
        with pytest.raises(StyleError, match="named values"):
            interpolate("Hi $name", ("Ada",), style="$")

    def test_no_attribute_access(self):
        """Test that $-templates cannot traverse attributes."""
        assert interpolate("$name.__class__", kwargs={"name": "Ada"}, style="$") == "Ada.__class__"
