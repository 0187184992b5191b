# common/api_error/config_error.py
from typing import Optional


class ConfigurationError(RuntimeError):
    """
    Invalid or missing configuration, raised at startup before the app
    serves anything. `env_var` names the offending variable when known.
    """

    def __init__(self, message: str, env_var: Optional[str] = None):
        super().__init__(message)
        self.env_var = env_var


__all__ = ["ConfigurationError"]
