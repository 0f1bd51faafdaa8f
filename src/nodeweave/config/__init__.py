"""
nodeweave.config - Configuration loading and defaults

Configuration comes from three layers, later ones winning:

1. ``DEFAULT_CONFIG``
2. ``.nodeweave.toml`` found in the working directory or a parent
3. ``NODEWEAVE_<SECTION>_<KEY>`` environment variables
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any

import tomlkit

CONFIG_FILENAME = ".nodeweave.toml"
ENV_PREFIX = "NODEWEAVE_"

DEFAULT_CONFIG: dict[str, Any] = {
    "links": {
        # Refuse task-task and note-note links
        "forbid_same_kind_a": True,
    },
    "history": {
        "max_entries": 50,
    },
    "storage": {
        "root": ".",
        "extension": ".md",
        "kind_directories": {
            "task": "tasks",
            "note": "notes",
            "project": "projects",
            "goal": "goals",
            "area": "areas",
            "resource": "resources",
        },
    },
    "codec": {
        # Keep header lines nodeweave does not understand when saving
        "preserve_unknown_fields": False,
    },
    "server": {
        "host": "127.0.0.1",
        "port": 5170,
    },
}


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find .nodeweave.toml in start_path or any parent directory.

    Args:
        start_path: Directory to start from. Defaults to the working directory.

    Returns:
        Path to the config file, or None if there is none.
    """
    current = (start_path or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge override into a copy of base."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _try_parse_env_value(value: str) -> Any:
    """Parse an environment value into bool, int, list or dict when it looks like one.

    Malformed JSON is returned unchanged as a string.
    """
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if value.strip().lstrip("-").isdigit():
        return int(value)
    if value.startswith(("[", "{")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply NODEWEAVE_<SECTION>_<KEY> variables onto config (in place).

    Example: NODEWEAVE_LINKS_FORBID_SAME_KIND_A=false sets
    ``config["links"]["forbid_same_kind_a"] = False``.
    """
    for name, raw in os.environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        parts = name[len(ENV_PREFIX) :].lower().split("_", 1)
        if len(parts) != 2 or not all(parts):
            continue
        section, key = parts
        target = config.setdefault(section, {})
        if isinstance(target, dict):
            target[key] = _try_parse_env_value(raw)
    return config


def load_config(config_path: Path) -> dict[str, Any]:
    """Load one TOML config file merged over the defaults.

    Raises:
        FileNotFoundError: If config_path does not exist.
        tomlkit.exceptions.ParseError: If the file is not valid TOML.
    """
    text = Path(config_path).read_text(encoding="utf-8")
    data = tomlkit.parse(text).unwrap()
    return merge_configs(DEFAULT_CONFIG, data)


def get_config(config_path: Path | None = None, start_path: Path | None = None) -> dict[str, Any]:
    """Return the effective configuration.

    Uses config_path when given, otherwise searches upward from start_path.
    Environment overrides are applied last.
    """
    path = config_path or find_config_file(start_path)
    config = load_config(path) if path else copy.deepcopy(DEFAULT_CONFIG)
    if path is not None:
        config["_config_path"] = str(path)
    return _apply_env_overrides(config)


def get_storage_root(config: dict[str, Any], override: Path | None = None) -> Path:
    """Resolve the storage root, relative paths being taken from the config file's directory."""
    if override is not None:
        return override.resolve()
    root = Path(config.get("storage", {}).get("root", "."))
    if not root.is_absolute():
        config_path = config.get("_config_path")
        base = Path(config_path).parent if config_path else Path.cwd()
        root = base / root
    return root.resolve()


def write_default_config(directory: Path) -> Path:
    """Write a commented default .nodeweave.toml into directory.

    Raises:
        FileExistsError: If the file already exists.
    """
    path = directory / CONFIG_FILENAME
    if path.exists():
        raise FileExistsError(f"{path} already exists")

    doc = tomlkit.document()
    doc.add(tomlkit.comment("nodeweave configuration"))
    doc.add(tomlkit.nl())

    links = tomlkit.table()
    links.add(tomlkit.comment("Refuse task-task and note-note links"))
    links.add("forbid_same_kind_a", DEFAULT_CONFIG["links"]["forbid_same_kind_a"])
    doc.add("links", links)

    history = tomlkit.table()
    history.add("max_entries", DEFAULT_CONFIG["history"]["max_entries"])
    doc.add("history", history)

    storage = tomlkit.table()
    storage.add("root", DEFAULT_CONFIG["storage"]["root"])
    storage.add("extension", DEFAULT_CONFIG["storage"]["extension"])
    kind_dirs = tomlkit.table()
    for kind, dirname in DEFAULT_CONFIG["storage"]["kind_directories"].items():
        kind_dirs.add(kind, dirname)
    storage.add("kind_directories", kind_dirs)
    doc.add("storage", storage)

    codec = tomlkit.table()
    codec.add(tomlkit.comment("Keep header lines nodeweave does not understand when saving"))
    codec.add("preserve_unknown_fields", DEFAULT_CONFIG["codec"]["preserve_unknown_fields"])
    doc.add("codec", codec)

    path.write_text(tomlkit.dumps(doc), encoding="utf-8")
    return path


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_CONFIG",
    "find_config_file",
    "get_config",
    "get_storage_root",
    "load_config",
    "merge_configs",
    "write_default_config",
]
