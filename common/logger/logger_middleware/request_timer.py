# common/logger/logger_middleware/request_timer.py
import time
from contextlib import contextmanager
from typing import Dict, Iterator


class RequestTimer:
    """
    Per-request accumulator of named durations (ms) and counters.

    The middleware owns one instance per request through
    request_timer_context_var; the db layer adds "db", "sql" and
    "query_count" entries to it.
    """

    def __init__(self) -> None:
        self.timings: Dict[str, float] = {}

    @contextmanager
    def capture(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - start) * 1000)

    def record(self, name: str, duration_ms: float) -> None:
        self.timings[name] = self.timings.get(name, 0) + duration_ms

    def increment(self, name: str, amount: int = 1) -> None:
        self.timings[name] = self.timings.get(name, 0) + amount

    def format_server_timing(self) -> str:
        # db;dur=10.50, sql;dur=5.20 (counters are not durations)
        return ", ".join(
            f"{name};dur={dur:.2f}"
            for name, dur in self.timings.items()
            if name != "query_count"
        )


__all__ = ["RequestTimer"]
