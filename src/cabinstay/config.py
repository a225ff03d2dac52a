"""YAML + .env configuration loader."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "dev-secret-change-me"


def _find_project_root() -> Path:
    """Walk up from this file to find the directory containing config.yaml."""
    current = Path(__file__).resolve().parent
    for _ in range(10):
        if (current / "config.yaml").exists():
            return current
        current = current.parent
    # Fallback to cwd
    return Path.cwd()


PROJECT_ROOT = _find_project_root()


def load_env() -> None:
    """Load .env file from project root."""
    env_path = PROJECT_ROOT / ".env"
    load_dotenv(env_path)


def load_yaml_config() -> dict[str, Any]:
    """Load config.yaml from project root."""
    config_path = PROJECT_ROOT / "config.yaml"
    if not config_path.exists():
        raise FileNotFoundError(f"config.yaml not found at {config_path}")
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def get_env(key: str, default: str | None = None) -> str | None:
    """Get an environment variable."""
    return os.environ.get(key, default)


def get_database_url() -> str:
    """Return the database URL, defaulting to a local SQLite file."""
    default = f"sqlite:///{PROJECT_ROOT / 'cabinstay.db'}"
    return get_env("DATABASE_URL", default)


@dataclass(frozen=True)
class AuthConfig:
    """Secret and algorithm used to verify identity claims."""

    secret: str
    algorithm: str = "HS256"


def load_auth_config() -> AuthConfig:
    """Build the identity verification config. Called once at process start."""
    secret = get_env("JWT_SECRET")
    if not secret:
        logger.warning("JWT_SECRET is not set, using the development secret")
        secret = DEV_JWT_SECRET
    algorithm = settings.get("auth", {}).get("algorithm", "HS256")
    return AuthConfig(secret=secret, algorithm=algorithm)


# Load on import
load_env()
settings: dict[str, Any] = load_yaml_config()
