"""
lazylog: Eager vs Deferred Log Formatting.

Companion package to a lightning talk on string formatting for logging.
It compares the ways a message can be built at a logging call site, and
shows when the work is wasted and when it is dangerous.

Key Features:
- Deferred {}- and $-style messages that respect the severity threshold
- An eager/deferred interpolation policy for any logger
- Static audit and guarded formatting of untrusted templates
- Benchmarks of one logging call per technique

Example:
    import logging
    from lazylog import StyleAdapter

    log = StyleAdapter(logging.getLogger(__name__), style="{")
    log.debug("Hello, {name}!", name="World")
"""

from lazylog.messages import (
    BraceMessage,
    DollarMessage,
    LazyMessage,
    StyleAdapter,
    use_record_style,
)
from lazylog.policy import InterpolationPolicy, PolicyLogger, emit
from lazylog.safety import SafeFormatter, UnsafeTemplateError, audit_template, safe_format
from lazylog.styles import FormatStyle, StyleError, interpolate
from lazylog.version import __version__

__all__ = [
    "__version__",
    # Styles
    "FormatStyle",
    "StyleError",
    "interpolate",
    # Deferred messages
    "LazyMessage",
    "BraceMessage",
    "DollarMessage",
    "StyleAdapter",
    "use_record_style",
    # Policy
    "InterpolationPolicy",
    "PolicyLogger",
    "emit",
    # Safety
    "SafeFormatter",
    "UnsafeTemplateError",
    "audit_template",
    "safe_format",
]
