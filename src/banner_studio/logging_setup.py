"""Configure service logging for the banner_studio package."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from banner_studio.config import settings

_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_configured = False


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """Return the 'banner_studio' logger, writing to stderr and optionally a daily file."""
    global _configured
    logger = logging.getLogger("banner_studio")
    if _configured:
        return logger

    formatter = logging.Formatter(_FORMAT, datefmt="%H:%M:%S")
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if settings.log_dir:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y-%m-%d")
        handler = logging.FileHandler(log_dir / f"banner_studio_{today}.log", encoding="utf-8")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        # Cleanup: keep last 7 days
        try:
            for f in sorted(log_dir.glob("banner_studio_*.log"))[:-7]:
                f.unlink(missing_ok=True)
        except OSError:
            logger.debug("could not prune old log files in %s", log_dir)

    logger.setLevel(level if level is not None else settings.log_level.upper())
    _configured = True
    return logger
