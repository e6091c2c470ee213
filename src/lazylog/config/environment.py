"""
Environment Variable Handling.

Manages environment variables and secrets using python-dotenv.

Call ensure_dotenv_loaded() early in startup so ``.env`` values are
visible before configuration is validated.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr

# Track whether dotenv has been loaded
_dotenv_loaded: bool = False

SECRET_KEY_ENV_VAR = "LAZYLOG_SECRET_KEY"


def ensure_dotenv_loaded(env_file: str = ".env") -> bool:
    """Ensure a .env file is loaded into os.environ.

    Variables already present in the environment are not overridden.

    Args:
        env_file: Path to .env file (relative or absolute)

    Returns:
        True if a .env file was found and loaded, False otherwise
    """
    global _dotenv_loaded

    if _dotenv_loaded:
        return True

    env_paths = [
        Path(env_file),
        Path.cwd() / env_file,
    ]

    _dotenv_loaded = True
    for env_path in env_paths:
        if env_path.is_file():
            load_dotenv(env_path, override=False)
            return True

    # No .env file found, that's okay
    return False


class EnvironmentConfig(BaseModel):
    """Secrets and settings taken from the environment.

    The secret key is the value the injection demo tries to reach. SecretStr
    masks it in repr() and str(), but attribute traversal in a format string
    can still get at the raw value; see lazylog.demo.

    Attributes:
        secret_key: Application secret
        env_file: Path to .env file
    """

    secret_key: SecretStr | None = Field(
        default=None,
        description="Application secret key",
    )
    env_file: str = Field(
        default=".env",
        description="Path to .env file",
    )

    @property
    def has_secret_key(self) -> bool:
        """Check if a secret key is configured."""
        return self.secret_key is not None


_config: EnvironmentConfig | None = None


def load_environment(env_file: str = ".env") -> EnvironmentConfig:
    """Load environment configuration.

    Loads from the .env file and caches the result.

    Args:
        env_file: Path to .env file

    Returns:
        EnvironmentConfig with loaded values
    """
    global _config

    ensure_dotenv_loaded(env_file)

    if _config is None or _config.env_file != env_file:
        secret = os.environ.get(SECRET_KEY_ENV_VAR)
        _config = EnvironmentConfig(
            secret_key=SecretStr(secret) if secret else None,
            env_file=env_file,
        )

    return _config


def reset_environment() -> None:
    """Reset cached environment configuration.

    Useful for testing or reloading after .env changes.
    """
    global _config, _dotenv_loaded
    _config = None
    _dotenv_loaded = False
