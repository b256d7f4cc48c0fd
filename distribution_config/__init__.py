"""
distribution_config -- single public entrypoint for engine configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  No other component reads configuration files or the
    environment directly.

Architecture position:
    Configuration -- sits above ``distribution_kernel`` and below
    ``distribution_services``.  The kernel never imports from here; the
    facade passes plain values down into kernel services.

Failure modes:
    - ``FileNotFoundError`` -- the overlay file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from distribution_config.loader import compute_checksum, load_config
from distribution_config.schema import EngineConfig

__all__ = ["EngineConfig", "get_active_config", "reset_active_config"]

_logger = logging.getLogger("distribution_kernel.config")

_active: EngineConfig | None = None
_lock = threading.Lock()


def get_active_config(config_path: Path | None = None, reload: bool = False) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    The first call loads and caches the configuration; later calls return
    the cached instance unless ``reload`` is set or a ``config_path`` is
    given.  A ``DISTRIBUTION_CONFIG_TRACE`` log entry is emitted on every
    load.
    """
    global _active
    with _lock:
        if _active is not None and not reload and config_path is None:
            return _active
        config = load_config(config_path, os.environ)
        _active = config

    _logger.info(
        "DISTRIBUTION_CONFIG_TRACE",
        extra={
            "checksum": compute_checksum(config),
            "confirmation_base_url": config.confirmation_base_url,
            "order_number_prefix": config.order_number_prefix,
            "receipt_number_prefix": config.receipt_number_prefix,
        },
    )
    return config


def reset_active_config() -> None:
    """Drop the cached configuration.  FOR TESTING ONLY."""
    global _active
    with _lock:
        _active = None
