"""
wholesale_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Entities and repositories receive the
    resulting module configs by constructor injection; they never read
    files themselves.

Architecture position:
    Configuration.  Sits above ``wholesale_kernel`` and
    ``wholesale_modules``.  The kernel MUST NEVER import from
    ``wholesale_config``.

Invariants enforced:
    - Single entrypoint: runtime config flows through ``get_active_config()``.
    - Deterministic identity: the same YAML document always yields the
      same checksum.
    - Unknown keys are rejected.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ValueError`` -- unknown keys or out-of-range values.
    - ``yaml.YAMLError`` -- malformed YAML.

Audit relevance:
    Every successful call emits a ``wholesale_config_loaded`` log entry
    with the config id, version and checksum.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from wholesale_config.loader import compute_checksum, load_yaml_file, parse_document
from wholesale_kernel.logging_config import get_logger
from wholesale_modules.purchasing.config import PurchasingConfig
from wholesale_modules.sales.config import SalesConfig

logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


@dataclass(frozen=True)
class WholesaleConfig:
    """
    The loaded configuration.  Frozen; module configs are owned copies.

    ``log_level`` is applied by the process entry point through
    ``configure_logging(level=config.log_level)``; loading a config never
    reconfigures logging as a side effect.
    """

    config_id: str
    version: int
    purchasing: PurchasingConfig
    sales: SalesConfig
    log_level: str
    checksum: str


def get_active_config(path: Path | None = None) -> WholesaleConfig:
    """
    The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to the packaged
            ``sets/default.yaml``.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If validation fails.
    """
    source = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    data = load_yaml_file(source)
    purchasing, sales, log_level = parse_document(data)

    config = WholesaleConfig(
        config_id=str(data.get("config_id", source.stem)),
        version=int(data.get("version", 1)),
        purchasing=purchasing,
        sales=sales,
        log_level=log_level,
        checksum=compute_checksum(data),
    )

    logger.info(
        "wholesale_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(source),
        },
    )
    return config


__all__ = ["WholesaleConfig", "get_active_config", "DEFAULT_CONFIG_PATH"]
