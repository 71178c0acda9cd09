import logging
import sys
from typing import List, Optional, TextIO

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s: %(message)s"


def _relay_handlers(stream: Optional[TextIO]) -> List[logging.Handler]:
    if stream is None:
        # under uvicorn, share its console handlers
        uvicorn_handlers = logging.getLogger("uvicorn.error").handlers
        if uvicorn_handlers:
            return list(uvicorn_handlers)
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return [handler]


def setup_logger(name: str = "codeshui", level: str = "INFO", stream: Optional[TextIO] = None) -> logging.Logger:
    """Return the relay logger, attaching console output once.

    The gateway modules log through the root logger; it gets the same handlers
    when nothing else has configured it, so store and transport lines appear
    next to the relay's own.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if logger.handlers:
        return logger

    handlers = _relay_handlers(stream)
    for h in handlers:
        logger.addHandler(h)

    root = logging.getLogger()
    if not root.handlers:
        for h in handlers:
            root.addHandler(h)
        root.setLevel(level)
    return logger
