import logging
import logging.config
import os
from datetime import datetime

from pytz import timezone

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# third-party loggers that flood the output below these levels
NOISY_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "pypdf": logging.ERROR,
}

_LEVEL_MARKS = {
    logging.CRITICAL: "⛔ ",
    logging.ERROR: "⛔ ",
    logging.WARNING: "⚠️ ",
}


def _resolve_level() -> int:
    name = os.getenv("LOG_LEVEL", "info").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


class ZonedFormatter(logging.Formatter):
    """Timestamps in TIMEZONE and a marker in front of warnings and errors."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, self.tz)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # a library logged with mismatched %-args
            message = f"{record.msg} {record.args}"
        # format a copy so other handlers still see the untouched record
        marked = logging.makeLogRecord(record.__dict__)
        marked.msg = _LEVEL_MARKS.get(record.levelno, "") + message
        marked.args = ()
        return super().format(marked)


def setup_logging(name: str = "cloud_rag") -> logging.Logger:
    """
    Configure console and rotating file output under ROOT_DIR/logs and return
    the application logger.

    LOG_LEVEL picks the level (debug, info, warning, ...). Debug also lifts the
    limits on the noisy third-party loggers.
    """
    level = _resolve_level()
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)
    tz_name = os.getenv("TIMEZONE", "America/Argentina/Buenos_Aires")
    formatter = {"()": ZonedFormatter, "format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"zoned": formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "zoned",
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "zoned",
                "filename": os.path.join(log_dir, "app.log"),
                "maxBytes": int(os.getenv("LOG_FILE_MAX_BYTES", 10 * 1024 * 1024)),
                "backupCount": int(os.getenv("LOG_FILE_BACKUPS", 5)),
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
    })

    if level > logging.DEBUG:
        for logger_name, floor in NOISY_LOGGERS.items():
            logging.getLogger(logger_name).setLevel(floor)

    return logging.getLogger(name)
