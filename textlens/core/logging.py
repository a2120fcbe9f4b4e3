import logging
import os
from logging.handlers import RotatingFileHandler
from typing import List

from textlens.core.config import Settings

# Set on every handler installed here, so a rebuilt app swaps them out.
_OWNED = "_textlens_owned"


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Settings) -> List[logging.Handler]:
    """
    Send the service's logs to stdout, and to a rotating file when
    ``settings.log_file`` is set.

    Handlers from an earlier call are removed first; handlers added by anyone
    else (pytest's capture, uvicorn) are left alone. Returns the installed
    handlers.
    """
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _OWNED, False)]:
        root.removeHandler(handler)
        handler.close()

    level = _level(settings.log_level)
    formatter = logging.Formatter(settings.log_format)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    file_error = None
    if settings.log_file:
        try:
            os.makedirs(os.path.dirname(settings.log_file) or ".", exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    settings.log_file,
                    maxBytes=settings.log_file_max_bytes,
                    backupCount=settings.log_file_backups,
                    encoding="utf-8",
                )
            )
        except OSError as exc:
            file_error = exc

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        setattr(handler, _OWNED, True)
        root.addHandler(handler)
    root.setLevel(level)

    if file_error is not None:
        # Startup continues with stdout only.
        logging.getLogger(__name__).warning("file logging disabled for %s: %s", settings.log_file, file_error)
    return handlers
