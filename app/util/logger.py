"""
Logging setup shared by every module.

- get_logger(name): returns a stdlib logger under the "specdocs" namespace.
- The first call installs one stream handler; later calls reuse it so
  Streamlit reruns don't stack duplicate handlers.

Level comes from Settings.log_level (env LOG_LEVEL), default INFO.
"""

import logging
from typing import Optional

from app.config import get_settings

ROOT_LOGGER = "specdocs"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def _configure() -> None:
    global _configured
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(get_settings().log_level.upper())
    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Child logger of the app root, e.g. get_logger("extract") -> specdocs.extract."""
    if not _configured:
        _configure()
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
