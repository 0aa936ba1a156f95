"""
Configuration Loader (``wholesale_config.loader``).

Responsibility
--------------
Reads a YAML configuration file and turns its sections into the typed
module configuration dataclasses.  Runtime code does not call this
directly; the single entry point is ``wholesale_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown top-level or section keys raise ``ValueError``; nothing is
  silently ignored.
* ``compute_checksum`` is a deterministic SHA-256 over the canonical JSON
  form of the raw document.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* A document that is not a mapping, or a section that is not a mapping
  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from wholesale_modules.purchasing.config import PurchasingConfig
from wholesale_modules.sales.config import SalesConfig

TOP_LEVEL_KEYS = frozenset({"config_id", "version", "log_level", "purchasing", "sales"})

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    An empty file yields an empty dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Configuration section {name!r} must be a mapping")
    return section


def parse_log_level(data: dict[str, Any]) -> str:
    level = str(data.get("log_level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log_level {level!r}; expected one of {sorted(_LOG_LEVELS)}")
    return level


def parse_document(
    data: dict[str, Any],
) -> tuple[PurchasingConfig, SalesConfig, str]:
    """
    Validate a raw configuration document.

    Returns:
        (purchasing config, sales config, log level)

    Raises:
        ValueError: for unknown keys or invalid values.
    """
    unknown = sorted(set(data) - TOP_LEVEL_KEYS)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {unknown}")

    purchasing = PurchasingConfig.from_dict(_section(data, "purchasing"))
    sales = SalesConfig.from_dict(_section(data, "sales"))
    return purchasing, sales, parse_log_level(data)
