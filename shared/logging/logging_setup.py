from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


_ANSI_RESET = "\033[0m"
_ANSI_COLORS: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
    "white":   "\033[37m",
}

# level markers prepended to the message text
_LEVEL_MARKERS: dict[int, str] = {
    logging.CRITICAL: "⛔ ",
    logging.ERROR: "⛔ ",
    logging.WARNING: "⚠️ ",
}

# third party loggers that are only interesting while debugging
_NOISY_LOGGERS = ("httpx", "httpcore", "redis")

_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _is_debug_mode() -> bool:
    return os.getenv("LOG_LEVEL", "info").lower() == "debug"


def _resolve_log_dir() -> str:
    return os.getenv("LOG_DIR") or os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")


class TimezoneFormatter(logging.Formatter):
    """Formats timestamps in the configured TIMEZONE and marks warnings and errors."""

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
            # keep the raw template instead of dropping the line
            message = f"{record.msg} {record.args}"

        record.msg = _LEVEL_MARKERS.get(record.levelno, "") + message
        # args are already merged into msg
        record.args = ()
        return super().format(record)


class ColoredFormatter(TimezoneFormatter):
    """Console formatter that wraps a line in ANSI colors when the record has a ``color`` attribute."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _ANSI_COLORS.get(getattr(record, "color", None) or "", "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi and line else line


class ColorLogger:
    """Wraps a :class:`logging.Logger` so every log call accepts ``color=``.

    Usage::

        logger.info("Message indexer worker started", color="green")

    The color only reaches the console handler; the log file stays plain.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _emit(self, method: str, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        getattr(self._logger, method)(msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("debug", msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("info", msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("warning", msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("error", msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("critical", msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("exception", msg, args, color, kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def _build_logging_config(log_file: str, loglevel: int, tz_name: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"()": TimezoneFormatter, "format": _LINE_FORMAT, "datefmt": _DATE_FORMAT, "tz_name": tz_name},
            "colored": {"()": ColoredFormatter, "format": _LINE_FORMAT, "datefmt": _DATE_FORMAT, "tz_name": tz_name},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "level": loglevel,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "plain",
                "level": loglevel,
                "filename": log_file,
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": loglevel},
    }


def setup_logging(log_name: str = "app") -> ColorLogger:
    """Configure root logging for the current process.

    The API server and the worker are separate processes and each writes
    its own file, <LOG_DIR>/<log_name>.log. LOG_DIR defaults to
    <ROOT_DIR>/logs, falling back to ./logs.

    Args:
        log_name (str): "api" or "worker"; also the name of the returned logger.

    Returns:
        ColorLogger: The process logger.
    """
    debug_mode = _is_debug_mode()
    loglevel = logging.DEBUG if debug_mode else logging.INFO
    log_dir = _resolve_log_dir()
    os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(
        _build_logging_config(
            log_file=os.path.join(log_dir, f"{log_name}.log"),
            loglevel=loglevel,
            tz_name=os.getenv("TIMEZONE", "Europe/Berlin"),
        )
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger(log_name))
