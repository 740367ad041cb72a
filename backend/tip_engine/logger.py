import logging
import sys

from .settings import settings

ROOT_NAME = "tip-engine"


def configure(level: str = settings.log_level) -> logging.Logger:
    """Attach the stdout handler to the package logger once and set its level."""
    root = logging.getLogger(ROOT_NAME)
    root.setLevel(level.upper())

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
            "%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(handler)
    return root


def get_logger(component: str) -> logging.Logger:
    """Child logger per component, e.g. `tip-engine.scheduler`."""
    return logging.getLogger(f"{ROOT_NAME}.{component}")


logger = configure()

__all__ = ["configure", "get_logger", "logger"]
