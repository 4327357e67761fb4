"""
expense_config -- single public entrypoint for expense configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``. Returns a frozen ``ExpenseConfiguration``
    parsed from the YAML file of the requested configuration set.

Architecture position:
    Configuration -- sits above ``expense_kernel`` and below
    ``expense_modules``. The kernel never imports from this package.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the given name.
    - ``ConfigurationError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``expense_config_loaded`` log entry with the config_id, version and
    checksum, tying edited reports back to the configuration in force.
"""

from __future__ import annotations

from pathlib import Path

from expense_config.loader import load_configuration
from expense_config.schema import ExpenseConfiguration
from expense_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
_CONFIG_FILENAME = "expense.yaml"


def get_active_config(
    config_set: str = "default",
    config_dir: Path | None = None,
) -> ExpenseConfiguration:
    """The ONLY public configuration entrypoint.

    Args:
        config_set: Name of the configuration set (a subdirectory).
        config_dir: Override for the sets directory (tests).

    Raises:
        FileNotFoundError: If the set or its YAML file does not exist.
        ConfigurationError: If the YAML content is malformed.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / config_set / _CONFIG_FILENAME
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = load_configuration(path)
    _logger.info(
        "expense_config_loaded",
        extra={
            "config_id": config.config_id,
            "version": config.version,
            "checksum": config.checksum,
            "category_count": len(config.category_rules),
            "project_count": len(config.settings.projects),
        },
    )
    return config


__all__ = ["ExpenseConfiguration", "get_active_config"]
