"""
Interpolation Syntaxes.

The three substitution syntaxes the standard ``logging`` module understands,
expressed as one eager ``interpolate()`` entry point:

- ``%`` printf-style, the default of ``LogRecord.getMessage``
- ``{`` ``str.format`` style
- ``$`` ``string.Template`` style

The enum values are the same symbols ``logging.Formatter(style=...)`` takes,
so a ``FormatStyle`` can be passed straight to the formatter.
"""

from collections.abc import Mapping
from enum import Enum
from string import Template
from typing import Any


class StyleError(ValueError):
    """Raised when a template cannot be interpolated with the given arguments."""

    def __init__(self, message: str, template: str, style: "FormatStyle") -> None:
        super().__init__(message)
        self.template = template
        self.style = style


class FormatStyle(str, Enum):
    """String interpolation syntax."""

    PERCENT = "%"
    BRACE = "{"
    DOLLAR = "$"

    @classmethod
    def parse(cls, value: "FormatStyle | str") -> "FormatStyle":
        """Resolve a style from an enum member, a symbol or a name.

        Args:
            value: ``"%"``, ``"{"``, ``"$"`` or a name such as ``"brace"``

        Returns:
            The matching FormatStyle

        Raises:
            ValueError: If the value names no known style
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in _STYLE_ALIASES:
            return _STYLE_ALIASES[key]
        raise ValueError(
            f"Unknown format style: {value!r} (expected one of %, {{, $ "
            f"or {', '.join(sorted(_STYLE_ALIASES))})"
        )


_STYLE_ALIASES: dict[str, FormatStyle] = {
    "%": FormatStyle.PERCENT,
    "percent": FormatStyle.PERCENT,
    "printf": FormatStyle.PERCENT,
    "{": FormatStyle.BRACE,
    "brace": FormatStyle.BRACE,
    "format": FormatStyle.BRACE,
    "$": FormatStyle.DOLLAR,
    "dollar": FormatStyle.DOLLAR,
    "template": FormatStyle.DOLLAR,
}

# The greeting example rendered identically by every style
GREETING_TEMPLATES: dict[FormatStyle, str] = {
    FormatStyle.PERCENT: "Hello, %(name)s!",
    FormatStyle.BRACE: "Hello, {name}!",
    FormatStyle.DOLLAR: "Hello, $name!",
}


def _single_mapping(args: tuple[Any, ...]) -> Mapping[str, Any] | None:
    # Same rule LogRecord.__init__ applies to a lone dict argument
    if len(args) == 1 and isinstance(args[0], Mapping) and args[0]:
        return args[0]
    return None


def interpolate(
    template: str,
    args: tuple[Any, ...] = (),
    kwargs: Mapping[str, Any] | None = None,
    style: FormatStyle | str = FormatStyle.PERCENT,
) -> str:
    """Substitute arguments into a template immediately.

    Args:
        template: Template text in the given style
        args: Positional arguments
        kwargs: Keyword arguments
        style: Interpolation syntax

    Returns:
        The interpolated string

    Raises:
        StyleError: If the arguments do not fit the template
    """
    style = FormatStyle.parse(style)
    kwargs = dict(kwargs or {})
    args = tuple(args)

    try:
        if style is FormatStyle.PERCENT:
            if args and kwargs:
                raise TypeError("printf-style templates take either args or a mapping")
            if kwargs:
                return template % kwargs
            if not args:
                return template
            mapping = _single_mapping(args)
            return template % (args if mapping is None else mapping)

        if style is FormatStyle.BRACE:
            return template.format(*args, **kwargs)

        mapping = _single_mapping(args)
        if mapping is not None:
            kwargs = {**mapping, **kwargs}
        elif args:
            raise TypeError("$-style templates only accept named values")
        return Template(template).substitute(kwargs)

    except (KeyError, IndexError, ValueError, TypeError) as e:
        raise StyleError(
            f"Cannot interpolate {template!r} with {style.value}-style: {e}",
            template=template,
            style=style,
        ) from e


def greeting(name: str, style: FormatStyle | str = FormatStyle.PERCENT) -> str:
    """Render the greeting example in the given style."""
    style = FormatStyle.parse(style)
    return interpolate(GREETING_TEMPLATES[style], kwargs={"name": name}, style=style)
