"""
clearcase/config.py
Persisted settings. Lives in clearcase_config.json in the project root;
missing keys fall back to DEFAULT_CONFIG.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "clearcase_config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "db_path": "clearcase.db",
    "mappings_path": "clearcase_mappings.json",
    "organizer_url": "",
    "grammar_url": "",
    "remote_timeout_sec": 30,
    "debounce_ms": 500,
    "parse_timeout_sec": 10,
    "parse_cache_size": 128,
    "author_perspective": "first_person",
    "use_remote_organizer": False,
    "api_host": "127.0.0.1",
    "api_port": 8765,
}

# CLEARCASE_<KEY> environment variables override the file.
ENV_PREFIX = "CLEARCASE_"


def _config_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path.cwd()
    return root / CONFIG_FILENAME


def _coerce(key: str, raw: str) -> Any:
    default = DEFAULT_CONFIG.get(key)
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Ignoring non-integer {ENV_PREFIX}{key.upper()}={raw!r}")
            return default
    return raw


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in DEFAULT_CONFIG:
        raw = os.environ.get(ENV_PREFIX + key.upper())
        if raw is not None:
            out[key] = _coerce(key, raw)
    return out


def load_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """Load config from clearcase_config.json. Returns defaults if missing or corrupt."""
    path = _config_path(project_root)
    data: Dict[str, Any] = {}
    if path.exists():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                data = loaded
            else:
                logger.warning(f"Config {path.name} is not a JSON object; using defaults")
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Config load failed: {e}")
    return {**DEFAULT_CONFIG, **data, **_env_overrides()}


def save_config(config: Dict[str, Any], project_root: Optional[Path] = None) -> Path:
    """Persist config to clearcase_config.json."""
    path = _config_path(project_root)
    path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    return path


def ensure_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load config, writing the defaults file on first run.
    Relative paths are resolved against the project root.
    """
    root   = project_root or Path.cwd()
    config = load_config(root)
    path   = _config_path(root)
    if not path.exists():
        save_config({k: config[k] for k in DEFAULT_CONFIG}, root)
        logger.info(f"Wrote default config → {path}")
    for key in ("db_path", "mappings_path"):
        p = Path(config[key])
        if not p.is_absolute():
            config[key] = str(root / p)
    return config
