"""Settings loader.

Locates a TOML configuration file, falls back to environment variables,
and wraps configuration failures in ApplicationError.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError
from toml import TomlDecodeError

from tiercache.config.models.settings import TierCacheSettings
from tiercache.shared.errors import create_config_error

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS: tuple[Path, ...] = (
    Path("tiercache.toml"),
    Path("config/tiercache.toml"),
)


def load_settings(config_path: str | Path | None = None) -> TierCacheSettings:
    """Load settings from a TOML configuration file or the environment.

    Args:
        config_path: Optional path to a TOML configuration file. If None, the
            default locations are tried before falling back to environment
            variables only.

    Returns:
        Validated settings

    Raises:
        ApplicationError: If the file cannot be parsed or fails validation
    """
    candidates = [Path(config_path)] if config_path else list(DEFAULT_CONFIG_PATHS)

    try:
        for candidate in candidates:
            if candidate.exists() or config_path:
                return TierCacheSettings.from_toml_file(candidate)
        logger.debug("No configuration file found, using environment")
        return TierCacheSettings()
    except FileNotFoundError as e:
        raise create_config_error(
            str(e),
            config_key="config_path",
            operation="load_settings",
            original_error=e,
        ) from e
    except (TomlDecodeError, ValidationError) as e:
        raise create_config_error(
            f"Invalid configuration: {e}",
            operation="load_settings",
            original_error=e,
        ) from e
