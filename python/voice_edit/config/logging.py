"""
Logging for the voice client and the signaling relay.

Everything logs under the "voice" hierarchy (voice.media, voice.protocol,
voice.relay, ...). aiortc and aioice are chatty during ICE negotiation, so
they are held at WARNING unless the voice level is DEBUG.

Environment Variables:
    VOICE_LOG_LEVEL - Log level (DEBUG, INFO, WARNING, ERROR). Default: INFO
"""

import logging
import os
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Third-party loggers quieted unless debugging
LIBRARY_LOGGERS = ("aiortc", "aioice", "aiohttp.access")


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv("VOICE_LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    name: str = "voice"
) -> logging.Logger:
    """
    Attach a stdout handler to the voice logger hierarchy.

    Calling it again replaces the handler, so the level can be changed at
    runtime.

    Args:
        level: Log level. Default from VOICE_LOG_LEVEL or INFO.
        format_string: Custom format. Default: timestamp + level + name + message.
        name: Root of the logger hierarchy to configure.

    Returns:
        The configured logger.
    """
    resolved = _resolve_level(level)

    logger = logging.getLogger(name)
    logger.setLevel(resolved)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(format_string or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(handler)

    library_level = logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING
    for library in LIBRARY_LOGGERS:
        logging.getLogger(library).setLevel(library_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the voice logger; configures logging on first use."""
    if name != "voice" and not name.startswith("voice."):
        name = f"voice.{name}"

    if not logging.getLogger("voice").handlers:
        setup_logging()

    return logging.getLogger(name)
