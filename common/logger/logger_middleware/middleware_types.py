# common/logger/logger_middleware/middleware_types.py
"""
Type definitions for request logging middleware.
"""

from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field, computed_field

_SLOW_REQUEST_MS = 1000.0
_MODERATE_SQL_MS = 100.0


class PerformanceBreakdown(BaseModel):
    """Where time went during the request."""

    total_ms: float
    app_logic_ms: float
    db_session_total_ms: float
    sql_execution_total_ms: float
    query_count: int = Field(0, description="Number of SQL statements executed")

    @property
    def db_overhead_ms(self) -> float:
        """Session management time (pool checkout, commit) outside SQL execution."""
        return round(self.db_session_total_ms - self.sql_execution_total_ms, 2)


class RequestMetadata(BaseModel):
    """Core request metadata, always captured."""

    method: str = Field(..., description="HTTP method")
    path: str = Field(..., description="Request path without query params")
    status_code: int = Field(..., ge=100, le=599)
    duration_ms: float = Field(..., ge=0)

    model_config = {"frozen": True}

    @computed_field
    def duration_seconds(self) -> float:
        return round(self.duration_ms / 1000, 3)


class RequestDetails(BaseModel):
    """Extended request details, optional."""

    request_id: Optional[str] = None
    user_id: Optional[str] = Field(None, description="Authenticated principal, if any")
    client_host: Optional[str] = None
    user_agent: Optional[str] = None
    query_params: Optional[Dict[str, Any]] = None
    path_params: Optional[Dict[str, Any]] = None
    content_length: Optional[int] = Field(None, ge=0)

    model_config = {"frozen": True}


class RequestLogEntry(BaseModel):
    """
    Complete request log entry. Serializes cleanly to JSON for persistence.
    """

    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: RequestMetadata
    details: Optional[RequestDetails] = None
    performance: Optional[PerformanceBreakdown] = None
    slow_query_threshold_ms: float = Field(500.0, exclude=True)

    model_config = {"frozen": True}

    @computed_field
    def is_slow(self) -> bool:
        return self.metadata.duration_ms > _SLOW_REQUEST_MS

    @computed_field
    def is_error(self) -> bool:
        return self.metadata.status_code >= 500

    @computed_field
    def optimization_warnings(self) -> list[str]:
        """
        Warnings only where there is real optimization potential.

        On fast requests a high DB share is normal, so percentage checks
        only apply above 200ms.
        """
        warns: list[str] = []
        if not self.performance:
            return warns

        perf = self.performance
        total_time = self.metadata.duration_ms
        threshold = self.slow_query_threshold_ms

        # A scoped search or permission check is a handful of queries
        if perf.query_count > 10:
            warns.append(
                f"N+1_QUERY_SUSPECTED: {perf.query_count} queries "
                f"(likely a per-row lookup)"
            )
        elif perf.query_count > 6:
            warns.append(f"HIGH_QUERY_COUNT: {perf.query_count} queries")

        if perf.sql_execution_total_ms > threshold:
            warns.append(
                f"SLOW_SQL: {perf.sql_execution_total_ms:.0f}ms in SQL "
                f"(check indexes and EXPLAIN plan)"
            )
        elif perf.sql_execution_total_ms > _MODERATE_SQL_MS:
            warns.append(f"MODERATE_SQL: {perf.sql_execution_total_ms:.0f}ms in SQL")

        if perf.db_overhead_ms > threshold / 2 and perf.db_overhead_ms > total_time * 0.3:
            warns.append(
                f"HIGH_CONNECTION_OVERHEAD: {perf.db_overhead_ms:.0f}ms "
                f"in connection management (check pool settings)"
            )

        if total_time > 200:
            db_percentage = (perf.db_session_total_ms / total_time) * 100
            if db_percentage > 80:
                warns.append(
                    f"DB_DOMINATED_REQUEST: {db_percentage:.0f}% "
                    f"of {total_time:.0f}ms spent in DB"
                )

        return warns


__all__ = [
    "RequestMetadata",
    "RequestDetails",
    "RequestLogEntry",
    "PerformanceBreakdown",
]
