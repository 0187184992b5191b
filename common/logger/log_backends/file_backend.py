# common/logger/log_backends/file_backend.py
"""File-based log persistence backend writing one JSON line per entry."""
import json
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict
from common.config import get_env
from common.scripts import get_week_date_range, get_project_root
from .base import LogBackend


class FileBackend(LogBackend):
    """
    Appends entries to weekly files named wkNN_<monday>--<sunday>.json.

    The directory comes from the log_dir option, then LOG_DIR, then
    <project_root>/logs.
    """

    def __init__(self, **config: Any):
        super().__init__(**config)

        log_dir = config.get("log_dir") or get_env("LOG_DIR")
        self._log_dir = Path(log_dir) if log_dir else get_project_root() / "logs"
        self._log_dir.mkdir(parents=True, exist_ok=True)

        self._total_writes = 0
        self._failed_writes = 0

    @property
    def name(self) -> str:
        return "file"

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def write(self, log_entry: Dict[str, Any]) -> bool:
        try:
            file_path = self._log_dir / self.filename_for(
                self._entry_date(log_entry)
            )
            payload = json.dumps(log_entry, ensure_ascii=False, default=str)

            with file_path.open(mode="a", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")

            self._total_writes += 1
            return True

        except (OSError, TypeError, ValueError) as e:
            print(f"FileBackend write failed: {e}", file=sys.stderr)
            self._failed_writes += 1
            return False

    @staticmethod
    def _entry_date(log_entry: Dict[str, Any]) -> date:
        timestamp = log_entry.get("timestamp")
        if isinstance(timestamp, str):
            try:
                return datetime.fromisoformat(timestamp).date()
            except ValueError:
                pass
        return date.today()

    @staticmethod
    def filename_for(log_date: date) -> str:
        week_start, week_end, week_number = get_week_date_range(log_date)
        return f"wk{week_number:02d}_{week_start.isoformat()}--{week_end.isoformat()}.json"

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "backend": self.name,
            "total_writes": self._total_writes,
            "failed_writes": self._failed_writes,
            "log_directory": str(self._log_dir),
        }


__all__ = ["FileBackend"]
