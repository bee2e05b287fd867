# diy_search/config/logging_config.py

"""Per-launch logging for the CLI, the TUI and the API server.

Each launch writes ``logs/<mode>_YYYYMMDD_HHMMSS.log`` with every
``diy_search.*`` record at ``Settings.LOG_FILE_LEVEL``.  The stderr
handler's level depends on the launch mode: the CLI only surfaces
warnings, the API server also shows per-search info lines, and the TUI
keeps stderr quiet so Textual owns the terminal.  ``DIY_SEARCH_LOG_LEVEL``
overrides the console level for any mode.

Retailer failures are absorbed into empty or placeholder results at
runtime; the log file is the only place their tracebacks survive.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from diy_search.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(name: str | None, default: int = logging.WARNING) -> int:
    """Numeric level for a name such as ``"info"``; *default* on junk."""
    if not name:
        return default
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else default


def console_level(mode: str, settings: Settings | None = None) -> int:
    settings = settings or Settings()
    if settings.LOG_CONSOLE_LEVEL:
        return resolve_level(settings.LOG_CONSOLE_LEVEL)
    return resolve_level(settings.LOG_CONSOLE_LEVELS.get(mode))


def setup_logging(mode: str = "cli") -> Path:
    """Configure the ``diy_search`` logger for a launch in *mode*.

    Calling it again only re-applies the console level for *mode* and
    returns the log file already in use.

    Returns:
        The :class:`~pathlib.Path` of this run's log file.
    """
    settings = Settings()
    root_logger = logging.getLogger("diy_search")
    root_logger.setLevel(logging.DEBUG)
    stderr_level = console_level(mode, settings)

    file_handlers = [
        h for h in root_logger.handlers if isinstance(h, logging.FileHandler)
    ]
    if file_handlers:
        for handler in root_logger.handlers:
            if handler not in file_handlers:
                handler.setLevel(stderr_level)
        return Path(file_handlers[0].baseFilename)

    logs_dir: Path = settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"{mode}_{timestamp}.log"

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(resolve_level(settings.LOG_FILE_LEVEL, logging.DEBUG))
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(stderr_level)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    for name in settings.QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(
        "Logging initialised (%s mode, console %s), log file: %s",
        mode,
        logging.getLevelName(stderr_level),
        log_file,
    )
    return log_file
