"""Logging setup for the CLI and the web portal."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Optional

import yaml

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO", config_path: Optional[str] = None) -> None:
    """Configure logging from a YAML dictConfig file, or plain basicConfig.

    A missing or unreadable config file falls back to ``basicConfig`` at
    *level* and logs why.
    """
    if config_path:
        path = Path(config_path)
        if path.exists():
            try:
                with open(path) as f:
                    logging.config.dictConfig(yaml.safe_load(f))
                logging.getLogger(__name__).info("Logging configured from %s", path)
                return
            except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
                logging.basicConfig(level=logging.INFO, format=_FORMAT)
                logging.getLogger(__name__).error(
                    "Could not load logging config %s: %s. Using basicConfig.", path, exc
                )
                return
        logging.basicConfig(level=_level(level), format=_FORMAT)
        logging.getLogger(__name__).warning(
            "Logging config %s not found. Using basicConfig.", path
        )
        return

    logging.basicConfig(level=_level(level), format=_FORMAT)


def _level(name: str) -> int:
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else logging.INFO
