# common/logger/logger.py
"""
Application logger with lazy structlog binding and optional persistence.

Usage:
    from common.logger import get_app_logger

    logger = get_app_logger(__name__)
    logger.info("Document indexed", document_id=doc_id)

    # Persist to the active log backends as well as stderr
    audit_logger = get_app_logger("audit", persist=True)
"""

import time
from datetime import datetime
from typing import Any, Dict, Optional
import structlog

from common.config.structlog_config import get_logger as _get_structlog_logger
from common.logger.persistence import persist_log


class TimingStats:
    """Cumulative cost of log calls for one logger."""

    def __init__(self) -> None:
        self.reset()

    def record(self, elapsed: float) -> None:
        self.total_calls += 1
        self.total_time += elapsed
        self.max_time = max(self.max_time, elapsed)
        self.min_time = min(self.min_time, elapsed)

    def get_stats(self) -> Dict[str, Any]:
        avg = self.total_time / self.total_calls if self.total_calls else 0
        return {
            "total_calls": self.total_calls,
            "avg_time_ms": avg * 1000,
            "max_time_ms": self.max_time * 1000,
            "min_time_ms": self.min_time * 1000 if self.total_calls else 0,
        }

    def reset(self) -> None:
        self.total_calls = 0
        self.total_time = 0.0
        self.max_time = 0.0
        self.min_time = float("inf")


class AppLogger:
    """
    Thin wrapper over a structlog BoundLogger.

    - structlog is resolved on first use, so module-level loggers can be
      created before initialize_config() runs
    - persist=True also hands every entry to the background persistence queue
    - track_timing=True records how long each log call took
    """

    def __init__(
        self,
        name: str = "pipeline_docs",
        persist: bool = False,
        track_timing: bool = False,
    ) -> None:
        self._name = name
        self._persist = persist
        self._logger_instance: Optional[structlog.BoundLogger] = None
        self._timing_stats: Optional[TimingStats] = (
            TimingStats() if track_timing else None
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def _logger(self) -> structlog.BoundLogger:
        if self._logger_instance is None:
            self._logger_instance = _get_structlog_logger(self._name)
        return self._logger_instance

    def _log(self, level: str, msg: str, **kwargs: Any) -> None:
        start_time = time.perf_counter() if self._timing_stats is not None else None

        try:
            getattr(self._logger, level)(msg, **kwargs)

            if self._persist:
                persist_log(
                    {
                        "timestamp": datetime.now().isoformat(),
                        "level": level.upper(),
                        "logger": self._name,
                        "message": msg,
                        **{k: v for k, v in kwargs.items() if k != "exc_info"},
                    }
                )
        finally:
            if self._timing_stats is not None and start_time is not None:
                self._timing_stats.record(time.perf_counter() - start_time)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log("debug", msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log("info", msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log("warning", msg, **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log("error", msg, **kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        self._log("critical", msg, **kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at error level with the active exception's traceback."""
        kwargs.setdefault("exc_info", True)
        self._log("error", msg, **kwargs)

    def get_timing_stats(self) -> Dict[str, Any]:
        if self._timing_stats is None:
            return {"error": "Timing tracking not enabled"}
        return self._timing_stats.get_stats()

    def reset_timing_stats(self) -> None:
        if self._timing_stats is not None:
            self._timing_stats.reset()


def get_app_logger(
    name: str = "pipeline_docs", persist: bool = False, track_timing: bool = False
) -> AppLogger:
    """
    Get application logger instance.

    Args:
        name: Logger name, usually __name__
        persist: Also write entries to the active log backends
        track_timing: Track per-call logging cost
    """
    return AppLogger(name=name, persist=persist, track_timing=track_timing)


# Shared instance for infrastructure code (db manager, startup)
logger = get_app_logger()

__all__ = ["logger", "AppLogger", "get_app_logger"]
