"""App configuration (default setup, reserved skill names, table source).

Stored as {data_dir}/config.json. get_config() returns defaults merged with
stored values; update_config() applies partial updates: default_setup and
table_provider merged key-by-key, reserved_skill_prefixes replaced
wholesale.

Environment (.env, loaded by the app and the launcher):
    DATA_DIR            data directory (default ./data)
    HOST, PORT          bind address for the dev server
    CHARGEN_LOG_LEVEL   root log level (default INFO)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from rpg_chargen.models import Setup

logger = logging.getLogger(__name__)

_CONFIG_DEFAULTS: dict[str, Any] = {
    "default_setup": Setup().model_dump(),
    "reserved_skill_prefixes": ["Traits_"],
    "table_provider": {
        "kind": "storage",  # "storage" | "http"
        "base_url": "",
        "api_key": "",
        "timeout": 30,
    },
}


def _config_path(data_dir: Path) -> Path:
    return data_dir / "config.json"


def _defaults() -> dict[str, Any]:
    return json.loads(json.dumps(_CONFIG_DEFAULTS))


def _merge(config: dict[str, Any], fields: dict[str, Any]) -> None:
    if isinstance(fields.get("default_setup"), dict):
        config["default_setup"].update(fields["default_setup"])
    if isinstance(fields.get("reserved_skill_prefixes"), list):
        config["reserved_skill_prefixes"] = [str(p) for p in fields["reserved_skill_prefixes"]]
    if isinstance(fields.get("table_provider"), dict):
        config["table_provider"].update(fields["table_provider"])


def get_config(data_dir: Path) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = _defaults()
    path = _config_path(data_dir)
    if path.is_file():
        _merge(config, json.loads(path.read_text()))
    return config


def update_config(data_dir: Path, fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config.

    Raises pydantic.ValidationError if the merged default_setup is invalid.
    """
    config = get_config(data_dir)
    _merge(config, fields)
    config["default_setup"] = Setup.model_validate(config["default_setup"]).model_dump()
    _config_path(data_dir).write_text(json.dumps(config, indent=2))
    logger.info("config updated: %s", ", ".join(sorted(fields)) or "(no fields)")
    return config


def default_setup(config: dict[str, Any]) -> Setup:
    return Setup.model_validate(config.get("default_setup") or {})
