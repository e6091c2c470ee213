"""Version information for lazylog."""

__version__ = "0.3.0"
