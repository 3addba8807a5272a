"""Logging for the RBAC core.

Every module logs under the ``tenant_rbac`` namespace. Hosts that already
configure logging can ignore setup_logging; otherwise create_rbac(...,
configure_logging=True) attaches a stdout handler to that namespace only.
"""

import logging
import sys

from tenant_rbac.core.config import Settings, get_settings

LOGGER_NAMESPACE = "tenant_rbac"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: Settings | None = None) -> logging.Logger:
    """Attach a stdout handler to the package logger and set its level.

    DEBUG when settings.debug is set, otherwise settings.log_level. Calling it
    again replaces the handler it installed earlier instead of stacking a second one.
    """
    settings = settings or get_settings()
    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    package_logger.setLevel(logging.DEBUG if settings.debug else settings.log_level.upper())

    for handler in list(package_logger.handlers):
        if getattr(handler, "_rbac_handler", False):
            package_logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._rbac_handler = True  # type: ignore[attr-defined]
    package_logger.addHandler(handler)
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module; pass ``__name__``."""
    return logging.getLogger(name)
