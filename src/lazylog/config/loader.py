"""
Configuration Loader.

Reads ``lazylog.yaml`` (or the file named by LAZYLOG_CONFIG), expands
``${VAR}`` references, layers LAZYLOG_* overrides on top and validates the
result into a LazylogConfig.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from lazylog.config.environment import load_environment
from lazylog.config.models import LazylogConfig

logger = logging.getLogger(__name__)

# Searched in order, relative to the working directory
DEFAULT_CONFIG_PATHS = [
    "lazylog.yaml",
    "lazylog.yml",
    ".lazylog.yaml",
    ".lazylog.yml",
]

CONFIG_ENV_VAR = "LAZYLOG_CONFIG"

# Variable name -> dotted field path in LazylogConfig
ENV_VAR_OVERRIDES = {
    "LAZYLOG_LOG_LEVEL": "logging.level",
    "LAZYLOG_LOG_FILE": "logging.file",
    "LAZYLOG_LOG_STYLE": "logging.style",
    "LAZYLOG_JSON_LOGS": "logging.json_output",
    "LAZYLOG_POLICY": "policy",
    "LAZYLOG_BENCH_NUMBER": "benchmark.number",
    "LAZYLOG_BENCH_REPEAT": "benchmark.repeat",
    "LAZYLOG_MAX_WIDTH": "safety.max_width",
    "LAZYLOG_DEBUG": "debug",
}

_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})

# Errors listed individually in ConfigurationError's text
_MAX_LISTED_ERRORS = 5


class ConfigurationError(Exception):
    """A config file could not be parsed or did not validate.

    Attributes:
        errors: pydantic error dicts, empty for parse failures
        path: File the configuration came from, if any
    """

    def __init__(
        self,
        message: str,
        errors: list[dict] | None = None,
        path: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or []
        self.path = path

    def __str__(self) -> str:
        text = super().__str__()
        if self.path:
            text += f" (file: {self.path})"
        lines = []
        for err in self.errors[:_MAX_LISTED_ERRORS]:
            loc = ".".join(str(part) for part in err.get("loc", []))
            lines.append(f"  - {loc}: {err.get('msg', 'Unknown error')}")
        hidden = len(self.errors) - _MAX_LISTED_ERRORS
        if hidden > 0:
            lines.append(f"  ... and {hidden} more errors")
        return "\n".join([text, *lines])


class ConfigLoader:
    """Builds a LazylogConfig from a YAML file, the environment and defaults.

    Precedence, lowest first: model defaults, the file, LAZYLOG_* variables.

    Usage:
        config = ConfigLoader("lazylog.yaml").load()
        config = ConfigLoader().load_from_env()
    """

    # ${NAME}, ${NAME:-fallback} or ${NAME:fallback}
    ENV_PATTERN = re.compile(r"\$\{(\w+)(?::-?([^}]*))?\}")

    def __init__(
        self,
        config_path: str | Path | None = None,
        env_file: str = ".env",
    ) -> None:
        self._config_path = Path(config_path) if config_path else None
        self._env_file = env_file
        self._config: LazylogConfig | None = None
        self._loaded_from_path: Path | None = None

    @property
    def config_path(self) -> Path | None:
        return self._config_path

    @property
    def loaded_from_path(self) -> Path | None:
        """File the current config came from, or None for defaults."""
        return self._loaded_from_path

    @property
    def config(self) -> LazylogConfig | None:
        return self._config

    def get(self) -> LazylogConfig:
        """Return the loaded config, raising RuntimeError before any load."""
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() or load_from_env() first.")
        return self._config

    def load(self, path: str | Path | None = None) -> LazylogConfig:
        """Validate the config at ``path`` (or the constructor's path).

        With no path anywhere, only defaults and LAZYLOG_* overrides apply.

        Raises:
            ConfigurationError: Unparseable YAML or a failed validation
            FileNotFoundError: The path does not exist
        """
        if path is not None:
            self._config_path = Path(path)

        load_environment(self._env_file)

        raw = self._read_yaml(self._config_path) if self._config_path else {}
        self._loaded_from_path = self._config_path

        data = self._substitute_env_vars(raw)
        for env_var, field_path in ENV_VAR_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value is not None:
                _set_dotted(data, field_path, self._coerce_type(value))
                logger.debug("%s overrides %s", env_var, field_path)

        try:
            # Empty YAML sections come through as None
            self._config = LazylogConfig(**_drop_none(data))
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {e.error_count()} errors",
                errors=e.errors(),
                path=self._loaded_from_path,
            ) from e

        logger.debug("Configuration loaded from %s", self._loaded_from_path or "defaults")
        return self._config

    def load_from_env(self) -> LazylogConfig:
        """Load the file named by LAZYLOG_CONFIG, else the first default path found.

        Raises:
            ConfigurationError: The file is invalid
            FileNotFoundError: LAZYLOG_CONFIG names a missing file, or no
                default path exists
        """
        load_environment(self._env_file)
        return self.load(self._discover())

    def reload(self) -> LazylogConfig:
        """Read the same file again."""
        path = self._loaded_from_path or self._config_path
        if path is None:
            raise RuntimeError(
                "Cannot reload: no configuration path. Call load() or load_from_env() first."
            )
        self._config = None
        return self.load(path)

    def save(self, path: str | Path | None = None) -> None:
        """Write the loaded config as YAML to ``path`` or the config path."""
        if self._config is None:
            raise ValueError("No configuration loaded")
        target = Path(path) if path else self._config_path
        if target is None:
            raise ValueError("No path specified for saving")
        with open(target, "w") as f:
            yaml.safe_dump(
                self._config.to_yaml_dict(), f, default_flow_style=False, sort_keys=False
            )

    @staticmethod
    def _discover() -> Path:
        named = os.environ.get(CONFIG_ENV_VAR)
        if named:
            if not Path(named).exists():
                raise FileNotFoundError(
                    f"Config file specified by {CONFIG_ENV_VAR} not found: {named}"
                )
            return Path(named)

        for candidate in map(Path, DEFAULT_CONFIG_PATHS):
            if candidate.exists():
                return candidate

        raise FileNotFoundError(
            f"No configuration file found. Searched: {', '.join(DEFAULT_CONFIG_PATHS)}. "
            f"Set {CONFIG_ENV_VAR} or create one of them."
        )

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", path=path) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Top level of config must be a mapping, got {type(data).__name__}",
                path=path,
            )
        return data

    def _substitute_env_vars(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: self._substitute_env_vars(value) for key, value in data.items()}
        if isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]
        if isinstance(data, str):
            return self._substitute_string(data)
        return data

    def _substitute_string(self, value: str) -> Any:
        """Expand ${VAR} references in one string.

        A value that is a single reference is coerced to bool/int/float.
        References with neither a value nor a fallback stay as written.
        """

        def lookup(match: re.Match[str]) -> str | None:
            found = os.environ.get(match.group(1))
            return found if found is not None else match.group(2)

        def replace(match: re.Match[str]) -> str:
            resolved = lookup(match)
            return match.group(0) if resolved is None else resolved

        whole = self.ENV_PATTERN.fullmatch(value)
        if whole:
            resolved = lookup(whole)
            return value if resolved is None else self._coerce_type(resolved)
        return self.ENV_PATTERN.sub(replace, value)

    def _coerce_type(self, value: str) -> Any:
        """Turn an environment string into None, bool, int or float where it reads as one."""
        if value == "":
            return None
        word = value.lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        convert = float if "." in value or "e" in word else int
        try:
            return convert(value)
        except ValueError:
            return value


def _set_dotted(data: dict[str, Any], dotted: str, value: Any) -> None:
    *parents, leaf = dotted.split(".")
    for key in parents:
        if not isinstance(data.get(key), dict):
            data[key] = {}
        data = data[key]
    data[leaf] = value


def _drop_none(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: _drop_none(value) for key, value in data.items() if value is not None}
    if isinstance(data, list):
        return [_drop_none(item) for item in data]
    return data


# Module-level cache used by the CLI
_global_loader: ConfigLoader | None = None
_global_config: LazylogConfig | None = None


def load_config(
    config_path: str | Path | None = None,
    env_file: str = ".env",
) -> LazylogConfig:
    """Load ``config_path`` and make it the process-wide config."""
    global _global_loader, _global_config

    _global_loader = ConfigLoader(config_path, env_file)
    _global_config = _global_loader.load()
    return _global_config


def load_config_from_env(env_file: str = ".env") -> LazylogConfig:
    """Discover the config file, load it and make it the process-wide config."""
    global _global_loader, _global_config

    _global_loader = ConfigLoader(env_file=env_file)
    _global_config = _global_loader.load_from_env()
    return _global_config


def get_config() -> LazylogConfig:
    if _global_config is None:
        raise RuntimeError(
            "Configuration not loaded. Call load_config() or load_config_from_env() first."
        )
    return _global_config


def reload_config() -> LazylogConfig:
    """Re-read the process-wide config from its file."""
    global _global_config

    if _global_loader is None:
        raise RuntimeError(
            "Cannot reload: no configuration loaded. "
            "Call load_config() or load_config_from_env() first."
        )
    _global_config = _global_loader.reload()
    return _global_config


def reset_config() -> None:
    global _global_loader, _global_config
    _global_loader = None
    _global_config = None


def create_default_config() -> LazylogConfig:
    """Defaults plus LAZYLOG_* overrides, no file."""
    return ConfigLoader().load()


def get_loader() -> ConfigLoader | None:
    return _global_loader
