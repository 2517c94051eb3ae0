"""
Trail config loader: JSON file -> frozen dataclass tree, validated against JSON Schema.

Schema: config/trail_config.schema.json (shipped next to this module).

The file holds the API tokens as well as the trailing rules, because a
token refresh rewrites it in place (see ``save_trail_config``). Key names
follow the format Darwinex users already keep on disk:

    {
     "authtoken": "...",
     "refreshtoken": "...",
     "consumerkey": "...",
     "consumersecret": "...",
     "investorid": 1234,
     "darwins": [{"name": "EURUSD", "trailingSL": "2.5%"}]
    }

Usage:
    from config import load_trail_config
    cfg = load_trail_config("config.json")
    cfg.rules[0].spec  # -> "2.5%"
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import jsonschema

from trail_core.contracts import Credentials, TrailingRule
from trail_core.errors import ConfigInvalidError, PersistenceError

logger = logging.getLogger("trailstop.config")

DEFAULT_CONFIG_PATH = Path("config.json")
DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent / "trail_config.schema.json"

CONFIG_FILE_MODE = 0o600


# ---------------------------------------------------------------------------
# Frozen dataclass tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AlertingConfig:
    structured_logs: bool = False
    webhook_url: str = ""


@dataclass(frozen=True)
class TrailConfig:
    """One run's immutable view of the config file."""

    credentials: Credentials
    rules: tuple[TrailingRule, ...]
    investor_id: int | None = None
    alerting: AlertingConfig = field(default_factory=AlertingConfig)

    def with_credentials(self, credentials: Credentials) -> TrailConfig:
        return replace(self, credentials=credentials)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


def _validate_schema(data: dict[str, Any], schema_path: Path) -> None:
    """Validate *data* against the JSON Schema at *schema_path*."""
    if not schema_path.exists():
        raise ConfigInvalidError(f"Schema file not found: {schema_path}")
    with open(schema_path) as f:
        schema = json.load(f)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        where = "/".join(str(p) for p in exc.absolute_path)
        if where.endswith("trailingSL"):
            raise ConfigInvalidError(
                f"{where}: trailingSL must be a number or a percentage, e.g. 46.5 or 2.53%"
            ) from exc
        prefix = f"{where}: " if where else ""
        raise ConfigInvalidError(f"Config validation failed: {prefix}{exc.message}") from exc


def _build_config(data: dict[str, Any]) -> TrailConfig:
    """Convert a raw dict (already validated) into the frozen dataclass tree."""
    alerting_raw = data.get("alerting", {})
    investor_id = data.get("investorid") or None
    return TrailConfig(
        credentials=Credentials(
            access_token=data["authtoken"],
            refresh_token=data["refreshtoken"],
            consumer_key=data["consumerkey"],
            consumer_secret=data["consumersecret"],
        ),
        rules=tuple(
            TrailingRule(name=d["name"], spec=d["trailingSL"]) for d in data["darwins"]
        ),
        investor_id=investor_id,
        alerting=AlertingConfig(
            structured_logs=alerting_raw.get("structured_logs", False),
            webhook_url=alerting_raw.get("webhook_url", ""),
        ),
    )


def parse_trail_config(
    data: Any,
    schema_path: str | Path | None = None,
) -> TrailConfig:
    """Validate an already-decoded config mapping and build a TrailConfig."""
    if not isinstance(data, dict):
        raise ConfigInvalidError(f"Config must be a JSON object, got {type(data).__name__}")
    _validate_schema(data, Path(schema_path) if schema_path else DEFAULT_SCHEMA_PATH)
    return _build_config(data)


def load_trail_config(
    config_path: str | Path | None = None,
    schema_path: str | Path | None = None,
) -> TrailConfig:
    """Load and validate the trailstop config file.

    Parameters
    ----------
    config_path:
        Path to the JSON config file.  Defaults to ``config.json`` in the CWD.
    schema_path:
        Path to the JSON Schema file.  Defaults to the schema shipped with
        this package.

    Raises
    ------
    ConfigInvalidError
        If the file is missing or unreadable, is not valid JSON, or fails
        schema validation.
    """
    cfg_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise ConfigInvalidError(f"Config file not found: {cfg_path}")

    try:
        with open(cfg_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigInvalidError(f"Config is not valid JSON: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigInvalidError(f"Cannot read config file {cfg_path}: {exc}") from exc

    cfg = parse_trail_config(data, schema_path)
    logger.debug("Loaded %d trailing rules from %s", len(cfg.rules), cfg_path)
    return cfg


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def config_to_dict(config: TrailConfig) -> dict[str, Any]:
    """Full-object serialization in the on-disk key format."""
    data: dict[str, Any] = {
        "authtoken": config.credentials.access_token,
        "consumerkey": config.credentials.consumer_key,
        "consumersecret": config.credentials.consumer_secret,
        "refreshtoken": config.credentials.refresh_token,
        "investorid": config.investor_id or 0,
        "darwins": [{"name": r.name, "trailingSL": r.spec} for r in config.rules],
    }
    if config.alerting != AlertingConfig():
        data["alerting"] = {
            "structured_logs": config.alerting.structured_logs,
            "webhook_url": config.alerting.webhook_url,
        }
    return data


def save_trail_config(config: TrailConfig, path: str | Path) -> None:
    """Rewrite the whole config file, readable by the owner only."""
    cfg_path = Path(path)
    payload = json.dumps(config_to_dict(config), indent=1) + "\n"
    try:
        fd = os.open(cfg_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CONFIG_FILE_MODE)
        with os.fdopen(fd, "w") as f:
            f.write(payload)
        os.chmod(cfg_path, CONFIG_FILE_MODE)
    except OSError as exc:
        raise PersistenceError(f"Error writing config file {cfg_path}: {exc}") from exc
    logger.debug("New authentication tokens saved to %s", cfg_path)
