from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


LOGGER_NAME = "doclifecycle"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ANSI_RESET = "\033[0m"
ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}
LEVEL_MARKERS: dict[int, str] = {
    logging.WARNING: "⚠️ ",
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
}


def get_log_level() -> int:
    """Level from LOG_LEVEL (debug, info, warning, error); unknown names fall back to info."""
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "info").strip().upper())
    return level if isinstance(level, int) else logging.INFO


class TimezoneFormatter(logging.Formatter):
    """Renders timestamps in the configured timezone and marks warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # malformed %-args from a third party logger, keep the raw template
            message = str(record.msg)

        # records are shared between handlers, format a copy
        rendered = logging.makeLogRecord(record.__dict__)
        rendered.msg = LEVEL_MARKERS.get(record.levelno, "") + message
        rendered.args = ()
        return super().format(rendered)


class ConsoleFormatter(TimezoneFormatter):
    """Console formatter that paints a line when the record carries a ``color`` name."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = ANSI_COLORS.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{ANSI_RESET}" if ansi else line


class ColorLogger:
    """Wrapper around :class:`logging.Logger` whose log methods accept ``color=``.

    Usage::

        logger.info("upload committed", color="green")

    Only the console handler renders colors; app.log stays plain text.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        self.log(logging.ERROR, msg, *args, **kwargs)

    def critical(self, msg, *args, **kwargs):
        self.log(logging.CRITICAL, msg, *args, **kwargs)

    def exception(self, msg, *args, **kwargs):
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, **kwargs)

    def __getattr__(self, name):
        """Delegate all other Logger attributes (e.g. setLevel, handlers) transparently."""
        return getattr(self._logger, name)


def build_logging_config(log_dir: str, tz_name: str, level: int) -> dict:
    """Build the dictConfig for colored console output and a rotating app.log.

    Args:
        log_dir (str): Directory that receives app.log.
        tz_name (str): pytz timezone name used to render timestamps.
        level (int): Level for both handlers and the root logger.

    Returns:
        dict: A logging.config.dictConfig compatible dictionary.
    """
    formatter = {"format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"()": TimezoneFormatter, **formatter},
            "console": {"()": ConsoleFormatter, **formatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "plain",
                "level": level,
                "filename": os.path.join(log_dir, "app.log"),
                "maxBytes": int(os.getenv("LOG_MAX_BYTES", 10 * 1024 * 1024)),
                "backupCount": int(os.getenv("LOG_BACKUP_COUNT", 5)),
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
    }


def setup_logging() -> ColorLogger:
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)
    level = get_log_level()

    logging.config.dictConfig(build_logging_config(log_dir, os.getenv("TIMEZONE", "Europe/Berlin"), level))

    # httpx logs every request at INFO; keep it quiet unless debugging
    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger(LOGGER_NAME))
