"""
Configuration loader.

Trail config: reads config.json, validates against JSON Schema, and writes
it back (owner-only) when the API tokens are refreshed.
"""

from config.trail_config import (
    AlertingConfig,
    TrailConfig,
    config_to_dict,
    load_trail_config,
    parse_trail_config,
    save_trail_config,
)

__all__ = [
    "AlertingConfig",
    "TrailConfig",
    "config_to_dict",
    "load_trail_config",
    "parse_trail_config",
    "save_trail_config",
]
