"""Logger factory shared by the API and the core services.

Every logger hangs off the ``bookshelf`` root so a single handler and the
``LOG_LEVEL`` setting apply everywhere.
"""
import logging
import threading

from .config import settings

ROOT_NAME = "bookshelf"

_LOCK = threading.Lock()
_configured = False


def _configure_root() -> logging.Logger:
    global _configured
    root = logging.getLogger(ROOT_NAME)
    if _configured:
        return root
    with _LOCK:
        if _configured:
            return root
        root.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
        if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("[bookshelf] %(asctime)s %(levelname)s %(name)s %(message)s"))
            root.addHandler(handler)
        root.propagate = False
        _configured = True
    return root


def get_logger(name: str = ROOT_NAME) -> logging.Logger:
    root = _configure_root()
    if name == ROOT_NAME:
        return root
    if not name.startswith(ROOT_NAME + "."):
        name = f"{ROOT_NAME}.{name}"
    return logging.getLogger(name)


__all__ = ["get_logger"]
