"""
lazylog package entry point.

Allows running lazylog as a module:
    python -m lazylog
"""

from lazylog.cli import main

if __name__ == "__main__":
    main()
