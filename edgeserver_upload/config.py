"""
Configuration loading and validation.

Each field resolves from, in order: an explicit value (CLI flag), the
EDGESERVER_* environment variable, then the INPUT_* variable a CI runner
sets for action inputs.
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Dict, Mapping, Optional

import httpx

from .errors import ConfigurationError
from .models import DeploymentConfig

logger = logging.getLogger(__name__)

FIELDS = ("server", "app_id", "token", "directory")
ENV_PREFIX = "EDGESERVER_"
CI_INPUT_PREFIX = "INPUT_"

# Pure digits only; float-looking values such as "1e10" are rejected.
APP_ID_PATTERN = re.compile(r"^[0-9]+$")

REQUIRED_MESSAGES = {
    "server": "Please specify a server",
    "app_id": "Please specify an app_id, you find this on your apps page.",
    "token": "Please specify a token, see /keys for more",
    "directory": "Please specify a directory such as `dist`",
}
INVALID_URL_MESSAGE = "Not a URL"
INVALID_APP_ID_MESSAGE = "Invalid app_id, try adding quotes around it."


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def load_env_file(path: Path, override: bool = False) -> None:
    """Load KEY=VALUE lines from a .env file into os.environ."""
    if not path.exists():
        raise ConfigurationError("env_file", f"env file not found: {path}")
    if not path.is_file():
        raise ConfigurationError("env_file", f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError("env_file", f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def ci_input_name(field: str) -> str:
    """Environment variable a CI runner uses for an action input."""
    return CI_INPUT_PREFIX + field.replace(" ", "_").upper()


def read_raw_config(
    overrides: Optional[Mapping[str, Optional[str]]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Collect unvalidated field values; missing fields become ''."""
    overrides = overrides or {}
    environ = os.environ if environ is None else environ

    raw: Dict[str, str] = {}
    for name in FIELDS:
        candidates = (
            overrides.get(name),
            environ.get(ENV_PREFIX + name.upper()),
            environ.get(ci_input_name(name)),
        )
        value = next((c for c in candidates if c is not None and c.strip()), "")
        raw[name] = value.strip()
    return raw


def _is_url(value: str) -> bool:
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError, ValueError):
        return False
    return url.scheme in {"http", "https"} and bool(url.host)


def validate_config(raw: Mapping[str, Optional[str]]) -> DeploymentConfig:
    """
    Validate raw values, aborting on the first invalid field.

    Raises:
        ConfigurationError: with the offending field name and message
    """
    values = {name: (raw.get(name) or "").strip() for name in FIELDS}

    for name in FIELDS:
        if not values[name]:
            raise ConfigurationError(name, REQUIRED_MESSAGES[name])
        if name == "server" and not _is_url(values[name]):
            raise ConfigurationError(name, INVALID_URL_MESSAGE)
        if name == "app_id" and not APP_ID_PATTERN.match(values[name]):
            raise ConfigurationError(name, INVALID_APP_ID_MESSAGE)

    return DeploymentConfig(**values)


def load_config(
    overrides: Optional[Mapping[str, Optional[str]]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DeploymentConfig:
    """Read and validate the configuration."""
    config = validate_config(read_raw_config(overrides, environ))
    logger.debug(
        "Loaded configuration: server=%s app_id=%s directory=%s token_length=%d",
        config.server,
        config.app_id,
        config.directory,
        len(config.token),
    )
    return config
