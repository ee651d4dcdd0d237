"""
fiscal_config -- single public entrypoint for fiscal configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``: the obligation catalog, the calendar and
    reminder settings, and the document issuance constants.  No other
    component reads configuration files directly.

Architecture position:
    Configuration -- sits above ``fiscal_kernel`` and below
    ``fiscal_services``.  The kernel MUST NEVER import from
    ``fiscal_config``; the services hand the parsed settings to kernel
    functions as plain arguments.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Read-only: the returned configuration is a tree of frozen dataclasses,
      loaded once per path and shared by every caller in the process.
    - Deterministic: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` / ``KeyError`` -- schema or range validation failures.

Audit relevance:
    Every load emits a ``FISCAL_CONFIG_TRACE`` log entry with the config id,
    version, checksum and catalog size, tying every computed calendar back to
    the configuration that produced it.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from fiscal_config.loader import load_configuration
from fiscal_config.schema import CalendarSettings, FiscalConfiguration

_logger = logging.getLogger("fiscal_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

_cache: dict[Path, FiscalConfiguration] = {}
_lock = threading.Lock()


def get_active_config(config_path: Path | str | None = None) -> FiscalConfiguration:
    """The ONLY public configuration entrypoint.

    Guarantees:
        - The first call for a path parses and validates the YAML and emits a
          ``FISCAL_CONFIG_TRACE`` log entry; later calls return the cached,
          identical object.

    Args:
        config_path: Override path to a configuration file.  Defaults to
            fiscal_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
        KeyError: If a required key is missing.
    """
    path = Path(config_path or _DEFAULT_CONFIG_PATH).resolve()
    with _lock:
        config = _cache.get(path)
        if config is not None:
            return config

        config = load_configuration(path)
        _cache[path] = config

    _logger.info(
        "FISCAL_CONFIG_TRACE",
        extra={
            "trace_type": "FISCAL_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "obligation_count": len(config.catalog),
            "config_path": str(path),
        },
    )
    return config


def clear_config_cache() -> None:
    """Forget loaded configurations (tests that edit YAML on disk)."""
    with _lock:
        _cache.clear()


__all__ = [
    "CalendarSettings",
    "FiscalConfiguration",
    "clear_config_cache",
    "get_active_config",
]
