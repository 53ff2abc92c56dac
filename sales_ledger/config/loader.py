"""
Service settings loading.

Reads an optional YAML settings file, then applies environment overrides.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from sales_ledger.errors import ConfigurationError

LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Environment variable -> settings field
ENV_OVERRIDES = {
    "SALES_LEDGER_DB": "db_path",
    "WEBHOOK_SECRET": "webhook_secret",
    "WEBHOOK_HOST": "webhook_host",
    "WEBHOOK_PORT": "webhook_port",
    "LOG_LEVEL": "log_level",
}


@dataclass(frozen=True)
class ServiceSettings:
    """Process-level settings shared by the webhook and the CLI."""
    db_path: str = "data/sales.db"
    webhook_secret: str = "changeme"
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 3000
    default_commission_rate: float = 10.0
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate setting values."""
        if not self.db_path:
            raise ConfigurationError("db_path cannot be empty")
        if not self.webhook_secret:
            raise ConfigurationError("webhook_secret cannot be empty")
        if not 0 < self.webhook_port < 65536:
            raise ConfigurationError("webhook_port must be between 1 and 65535")
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(f"log_level must be one of: {sorted(LOG_LEVELS)}")


def load_settings(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None
) -> ServiceSettings:
    """Load settings from a YAML file and the environment.

    Environment variables win over file values. Without a file, defaults
    plus environment are used.

    Args:
        path: Optional path to a YAML settings file
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Validated ServiceSettings

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid
    """
    if environ is None:
        environ = os.environ

    values: Dict[str, Any] = {}
    if path is not None:
        values.update(_read_settings_file(path))

    for env_name, field_name in ENV_OVERRIDES.items():
        if environ.get(env_name):
            values[field_name] = environ[env_name]

    return _build_settings(values)


def _read_settings_file(path: str) -> Dict[str, Any]:
    settings_path = Path(path)
    if not settings_path.exists():
        raise ConfigurationError(f"Settings file not found: {path}")

    with open(settings_path, 'r', encoding='utf-8') as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in settings file {path}: {e}")

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError("Settings file must contain a mapping")

    allowed_keys = set(ServiceSettings.__dataclass_fields__)
    unknown_keys = set(raw.keys()) - allowed_keys
    if unknown_keys:
        raise ConfigurationError(f"Unknown settings keys: {unknown_keys}")

    return raw


def _build_settings(values: Dict[str, Any]) -> ServiceSettings:
    settings = ServiceSettings()
    for key in ("db_path", "webhook_secret", "webhook_host", "log_level"):
        if key in values and values[key] is None:
            raise ConfigurationError(f"{key} cannot be null")

    try:
        if "webhook_port" in values:
            values["webhook_port"] = int(values["webhook_port"])
        if "default_commission_rate" in values:
            values["default_commission_rate"] = float(values["default_commission_rate"])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}")

    if "log_level" in values:
        values["log_level"] = str(values["log_level"]).upper()
    for key in ("db_path", "webhook_secret", "webhook_host"):
        if key in values:
            values[key] = str(values[key])

    return replace(settings, **values)
