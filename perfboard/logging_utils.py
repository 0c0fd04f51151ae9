"""Console logging setup shared by the CLI and the Streamlit app."""
from __future__ import annotations

import logging

SYSTEM_FMT = "[%(asctime)s] [%(levelname)s] %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach one console handler to the ``perfboard`` logger.

    Safe to call repeatedly (Streamlit reruns the script on every
    interaction); existing handlers are replaced rather than duplicated.
    """
    logger = logging.getLogger("perfboard")
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    logger.handlers = []

    sh = logging.StreamHandler()
    sh.setFormatter(logging.Formatter(SYSTEM_FMT))
    logger.addHandler(sh)
    logger.propagate = False
    return logger
