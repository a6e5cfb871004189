from __future__ import annotations

import logging
import re

LOGGER_NAME = "steward"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_CREDENTIAL_PATTERN = re.compile(r"(https?://)[^/@\s]+@")


def configure_logging(verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    # Replace rather than stack handlers; stderr may have been swapped since the last call.
    for handler in list(logger.handlers):
        if getattr(handler, "_steward", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._steward = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger


def mask_credentials(text: str) -> str:
    """Replace ``user:token@`` in URLs with ``***@``."""
    return _CREDENTIAL_PATTERN.sub(r"\1***@", text)
