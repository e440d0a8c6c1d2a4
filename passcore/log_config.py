"""Application logging setup.

Log files live in `data/logs/` (relative to CWD), rotated daily by
TimedRotatingFileHandler.

- Rotation: daily (midnight, UTC).
- Retention: `log_retention_days` (default 30).
- Level: `log_level` (default INFO).
"""
from __future__ import annotations

import glob
import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler

_LOG_DIR = os.path.join(os.getcwd(), "data", "logs")
_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Handlers installed by us, removed again on reconfiguration.
_file_handler: logging.Handler | None = None
_console_handler: logging.Handler | None = None


def _ensure_log_dir(log_dir: str) -> str:
    os.makedirs(log_dir, exist_ok=True)
    return log_dir


def _normalize_level(level: str) -> str:
    level_str = (level or "INFO").strip().upper()
    if level_str not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        level_str = "INFO"
    return level_str


def setup_logging(
    level: str = "INFO",
    retention_days: int = 30,
    max_size_mb: int = 50,
    log_dir: str | None = None,
) -> None:
    """Configure the root logger: a rotating file handler plus stdout."""
    global _file_handler, _console_handler

    level_str = _normalize_level(level)
    log_level = getattr(logging, level_str, logging.INFO)

    retention_days = max(1, min(365, int(retention_days or 30)))
    max_size_mb = max(5, min(500, int(max_size_mb or 50)))

    root = logging.getLogger()

    if _file_handler and _file_handler in root.handlers:
        root.removeHandler(_file_handler)
        _file_handler.close()
    if _console_handler and _console_handler in root.handlers:
        root.removeHandler(_console_handler)

    log_dir = _ensure_log_dir(log_dir or _LOG_DIR)
    log_file = os.path.join(log_dir, "app.log")

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)

    fh = TimedRotatingFileHandler(
        log_file,
        when="midnight",
        interval=1,
        backupCount=retention_days,
        encoding="utf-8",
        utc=True,
    )
    fh.suffix = "%Y-%m-%d"
    fh.setLevel(log_level)
    fh.setFormatter(formatter)
    _file_handler = fh

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    _console_handler = ch

    root.setLevel(log_level)
    root.addHandler(fh)
    root.addHandler(ch)

    _cleanup_old_logs(log_dir, retention_days, max_size_mb)

    # Library loggers are chatty at DEBUG.
    for name in ("uvicorn.access", "ldap3", "impacket"):
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.getLogger("passcore").info(
        "Logging configured: level=%s, retention=%d days, max size=%d MB",
        level_str, retention_days, max_size_mb,
    )


def _cleanup_old_logs(log_dir: str, retention_days: int, max_size_mb: int) -> None:
    """Remove rotated files older than retention_days, then oldest first above max_size_mb."""
    cutoff = time.time() - (retention_days * 86400)
    rotated = sorted(glob.glob(os.path.join(log_dir, "app.log.*")), key=os.path.getmtime)

    kept: list[str] = []
    for f in rotated:
        try:
            if os.path.getmtime(f) < cutoff:
                os.remove(f)
            else:
                kept.append(f)
        except OSError:
            logging.getLogger(__name__).debug("Cannot prune log file %s", f, exc_info=True)

    budget = max_size_mb * 1024 * 1024
    total = sum(os.path.getsize(f) for f in kept if os.path.exists(f))
    for f in kept:
        if total <= budget:
            break
        try:
            size = os.path.getsize(f)
            os.remove(f)
            total -= size
        except OSError:
            logging.getLogger(__name__).debug("Cannot prune log file %s", f, exc_info=True)
