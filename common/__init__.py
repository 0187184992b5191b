# common/__init__.py
"""
Shared infrastructure: configuration, errors, logging, security helpers.
"""

from .context_vars import *
from .api_error import *
from .config import *
from .logger import logger, get_app_logger, AppLogger
