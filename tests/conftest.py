"""
lazylog Test Configuration and Fixtures

Fixture Categories:
- Paths: project root
- Loggers: isolated loggers with an in-memory recording handler
- Configuration: clean global config and environment per test
"""

import logging
from collections.abc import Generator
from pathlib import Path

import pytest

from lazylog.config import ENV_VAR_OVERRIDES, reset_config, reset_environment
from lazylog.config.environment import SECRET_KEY_ENV_VAR
from lazylog.config.loader import CONFIG_ENV_VAR
from lazylog.logsetup import ROOT_LOGGER_NAME

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


# =============================================================================
# Logger Fixtures
# =============================================================================


class RecordingHandler(logging.Handler):
    """Keeps every record and its formatted text in memory."""

    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)
        self.messages.append(self.format(record))


@pytest.fixture
def recording_logger(request) -> Generator[tuple[logging.Logger, RecordingHandler], None, None]:
    """A non-propagating logger at INFO with a RecordingHandler attached.

    Example:
        def test_something(recording_logger):
            logger, handler = recording_logger
            logger.info("hi")
            assert handler.messages == ["hi"]
    """
    logger = logging.getLogger(f"lazylog.tests.{request.node.name}")
    logger.propagate = False
    logger.setLevel(logging.INFO)
    handler = RecordingHandler()
    logger.addHandler(handler)
    yield logger, handler
    logger.removeHandler(handler)


@pytest.fixture(autouse=True)
def reset_lazylog_logger() -> Generator[None, None, None]:
    """Remove handlers configure_logging installed during a test."""
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def isolated_config(monkeypatch, tmp_path) -> Generator[Path, None, None]:
    """Run with no LAZYLOG_* variables, no .env and an empty working directory."""
    import lazylog.config.environment as env_module

    reset_config()
    reset_environment()
    for var in [*ENV_VAR_OVERRIDES, CONFIG_ENV_VAR, SECRET_KEY_ENV_VAR]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    # Tests set their own environment; never read a stray .env
    monkeypatch.setattr(env_module, "_dotenv_loaded", True)

    yield tmp_path

    reset_config()
    reset_environment()
