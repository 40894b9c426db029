"""
printshop_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain configuration.
    It loads a YAML set (``sets/default.yaml`` unless told otherwise),
    parses it into frozen dataclasses and logs a ``PRINTSHOP_CONFIG_TRACE``
    entry carrying the config id, version and checksum.

Architecture position:
    Sits above ``printshop_kernel`` and beside ``printshop_services``.  The
    kernel never imports from here; ``NumberingDef.to_scheme`` hands kernel
    value objects across the boundary.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- missing or malformed sections.
"""

from __future__ import annotations

import logging
from pathlib import Path

from printshop_config.loader import load_config
from printshop_config.schema import PrintShopConfig

_logger = logging.getLogger("printshop_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> PrintShopConfig:
    """
    Load and return the active configuration.

    Args:
        config_path: Override path to a YAML configuration file.
            Defaults to printshop_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError / ValueError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = load_config(path)

    _logger.info(
        "PRINTSHOP_CONFIG_TRACE",
        extra={
            "trace_type": "PRINTSHOP_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "numbering_types": [n.type_key for n in config.numbering],
        },
    )
    return config


__all__ = ["PrintShopConfig", "get_active_config"]
