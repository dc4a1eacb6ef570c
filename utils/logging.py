import atexit
import json
import logging
import logging.handlers
import queue
from pathlib import Path

from config.config_loader import ConfigLoader
from utils.log_context import get_request_id

_queue_listener: logging.handlers.QueueListener | None = None
_atexit_registered = False

# Extra attributes copied from log records into the JSON payload when present
_EXTRA_FIELDS = (
    "user_id",
    "target_id",
    "target_type",
    "action",
    "endpoint",
    "method",
    "status_code",
    "error_code",
    "error",
)


class ErrorLevelFilter(logging.Filter):
    """Allow only error-or-higher log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        return record.levelno >= logging.ERROR


class CustomJsonFormatter(logging.Formatter):
    def __init__(self, datefmt: str | None = None) -> None:
        super().__init__(datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        record_dict = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.name,
            "funcName": record.funcName,
            "lineno": record.lineno,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            record_dict["request_id"] = request_id

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                record_dict[field] = getattr(record, field)

        if record.exc_info:
            record_dict["traceback"] = self.formatException(record.exc_info)

        return json.dumps(record_dict, ensure_ascii=False, default=str)


def setup_logging(log_file: str | None = None) -> None:
    """
    Setup structured logging with JSON formatting, queue-based async handling,
    and daily log rotation.

    Args:
        log_file: Path to the API log. Defaults to ``logging.file`` from the
            config, then "logs/api.log".
    """
    config = ConfigLoader.load_config()
    logging_config = config.get("logging") or {}
    log_level_name = str(logging_config.get("level", "INFO")).upper()
    log_level = getattr(logging, log_level_name, logging.INFO)
    log_path = Path(log_file or logging_config.get("file") or "logs/api.log")
    retention_days = int(logging_config.get("retention_days") or 30)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    # Stop any existing listener before creating a new one (e.g., during tests)
    global _queue_listener
    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None

    (log_path.parent / "errors").mkdir(parents=True, exist_ok=True)

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=1000)
    queue_listener = _build_queue_listener(log_queue, log_level, log_path, retention_days)

    queue_handler = logging.handlers.QueueHandler(log_queue)
    queue_handler.setLevel(log_level)
    root_logger.addHandler(queue_handler)

    queue_listener.start()
    _queue_listener = queue_listener

    _register_logging_shutdown()

    for noisy in ("aiosqlite", "httpx", "discord"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _daily_handler(path: Path, level: int, retention_days: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        interval=1,
        backupCount=retention_days,
        utc=True,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    return handler


def _build_queue_listener(
    log_queue: queue.Queue, log_level: int, log_path: Path, retention_days: int
) -> logging.handlers.QueueListener:
    """
    Dispatch queued records to the API log, the error JSONL log and stderr.
    """
    formatter = CustomJsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    file_handler = _daily_handler(log_path, log_level, retention_days)

    error_handler = _daily_handler(
        log_path.parent / "errors" / "errors.jsonl", logging.ERROR, retention_days
    )
    error_handler.namer = _error_log_namer  # type: ignore[assignment]
    error_handler.addFilter(ErrorLevelFilter())

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)

    for handler in (file_handler, error_handler, console_handler):
        handler.setFormatter(formatter)

    return logging.handlers.QueueListener(
        log_queue,
        file_handler,
        console_handler,
        error_handler,
        respect_handler_level=True,
    )


def _error_log_namer(default_name: str) -> str:
    """
    Rename rotated error files to match the errors_YYYY-MM-DD.jsonl pattern.
    """

    # Default name: /path/errors.jsonl.YYYY-MM-DD
    base_without_suffix, date_part = default_name.rsplit(".", 1)
    base_path = Path(base_without_suffix)
    return str(base_path.with_name(f"errors_{date_part}.jsonl"))


def _register_logging_shutdown() -> None:
    """Ensure the queue listener is stopped during interpreter shutdown."""

    global _atexit_registered

    if _atexit_registered:
        return

    def _shutdown_listener() -> None:
        global _queue_listener
        if _queue_listener:
            _queue_listener.stop()
            _queue_listener = None

    atexit.register(_shutdown_listener)
    _atexit_registered = True


def get_logger(name: str) -> logging.Logger:
    """
    Convenience method for retrieving a logger
    """
    return logging.getLogger(name)
