# common/logger/log_backends/base.py
"""Base class for log persistence backends."""

from abc import ABC, abstractmethod
from typing import Any, Dict


class LogBackend(ABC):
    """
    A destination for persisted log entries.

    write() must not raise for ordinary I/O failures; it reports them by
    returning False so the persistence worker keeps draining its queue.
    """

    def __init__(self, **config: Any):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier used in LOG_BACKENDS."""

    @abstractmethod
    def write(self, log_entry: Dict[str, Any]) -> bool:
        """
        Write one log entry.

        Args:
            log_entry: at minimum timestamp (ISO), level, logger, message
        """

    @abstractmethod
    def get_metrics(self) -> Dict[str, Any]:
        """Backend health counters for /metrics."""

    def shutdown(self, timeout: float = 5.0) -> None:
        """Release backend resources. No-op by default."""


__all__ = ["LogBackend"]
