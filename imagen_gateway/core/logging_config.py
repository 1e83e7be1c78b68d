"""
Logging setup for the gateway process.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only adjust the level."""
    global _configured
    root = logging.getLogger()
    if not _configured:
        logging.basicConfig(level=level, format=LOG_FORMAT)
        # httpx logs every request line at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
        _configured = True
    root.setLevel(level)


def key_suffix(api_key: str) -> str:
    """Loggable tail of an API key."""
    return f"...{api_key[-8:]}"
