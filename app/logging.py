import logging
import structlog
import sys
from pathlib import Path
from .config import settings

def setup_logging(level_name: str | None = None, error_file: str | None = None):
    level_name = (level_name or settings.log_level or "INFO").upper()
    log_level = getattr(logging, level_name, logging.INFO)
    error_log_path = (error_file if error_file is not None else settings.log_error_file or "").strip()

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    formatter = logging.Formatter("%(message)s")
    stdout = logging.StreamHandler(sys.stdout)
    stdout.setLevel(log_level)
    stdout.setFormatter(formatter)
    root.addHandler(stdout)

    # usage_stats_persist_failed and store_json_invalid are warnings
    if error_log_path:
        Path(error_log_path).parent.mkdir(parents=True, exist_ok=True)
        errors = logging.FileHandler(error_log_path)
        errors.setLevel(logging.WARNING)
        errors.setFormatter(formatter)
        root.addHandler(errors)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(log_level)

def bind_request(user_id: str, path: str):
    """Attach user and route to every log line emitted while serving one request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(user_id=user_id, path=path)
