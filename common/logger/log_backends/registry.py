# common/logger/log_backends/registry.py
"""
Registry of log persistence backends.

Configure via LOG_BACKENDS (comma-separated, default "file").
"""

import sys
import threading
from typing import Any, Dict, List, Type
from common.config import get_env
from .base import LogBackend
from .file_backend import FileBackend


_BACKEND_REGISTRY: Dict[str, Type[LogBackend]] = {
    "file": FileBackend,
}

_active_backends: List[LogBackend] = []
_backends_initialized = False
_init_lock = threading.Lock()


def register_backend(name: str, backend_class: Type[LogBackend]) -> None:
    """
    Register a backend class under a LOG_BACKENDS name.

    Must run before the first persisted log entry.
    """
    _BACKEND_REGISTRY[name] = backend_class


def _initialize_backends() -> None:
    global _backends_initialized

    backend_names = [
        name.strip().lower()
        for name in (get_env("LOG_BACKENDS", "file") or "file").split(",")
        if name.strip()
    ]

    for backend_name in backend_names:
        backend_class = _BACKEND_REGISTRY.get(backend_name)
        if backend_class is None:
            print(
                f"Warning: Unknown log backend '{backend_name}'. "
                f"Available: {', '.join(_BACKEND_REGISTRY)}",
                file=sys.stderr,
            )
            continue
        try:
            _active_backends.append(backend_class())
        except OSError as e:
            print(
                f"Failed to initialize log backend '{backend_name}': {e}",
                file=sys.stderr,
            )

    if not _active_backends:
        _active_backends.append(FileBackend())

    _backends_initialized = True


def get_active_backends() -> List[LogBackend]:
    if not _backends_initialized:
        with _init_lock:
            if not _backends_initialized:
                _initialize_backends()
    return _active_backends


def shutdown_all_backends(timeout: float = 5.0) -> None:
    for backend in _active_backends:
        backend.shutdown(timeout)


def get_all_metrics() -> Dict[str, Any]:
    """Metrics of every active backend keyed by backend name."""
    return {backend.name: backend.get_metrics() for backend in get_active_backends()}


__all__ = [
    "register_backend",
    "get_active_backends",
    "shutdown_all_backends",
    "get_all_metrics",
]
