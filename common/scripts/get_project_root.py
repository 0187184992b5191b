# common/scripts/get_project_root.py
import inspect
from pathlib import Path
from typing import Optional


def get_project_root(start: Optional[Path] = None) -> Path:
    """
    Find the directory that contains the top-level package.

    Walks up from `start` (default: the calling module's directory) while
    the directory is still a package, i.e. still has an __init__.py.

    Example:
        called from <root>/common/logger/log_backends/file_backend.py
        -> <root>
    """
    if start is None:
        frame = inspect.currentframe()
        caller = frame.f_back if frame is not None else None
        caller_file = caller.f_globals.get("__file__") if caller is not None else None
        if not caller_file:
            return Path.cwd()
        start = Path(caller_file).resolve().parent

    current_path = start
    while current_path != current_path.parent:
        if not (current_path / "__init__.py").exists():
            return current_path
        current_path = current_path.parent

    return start


__all__ = ["get_project_root"]
