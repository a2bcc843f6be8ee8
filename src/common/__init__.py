# src/common/__init__.py
"""
Общие утилиты, константы, логгер и конверт ошибок.
"""

from src.common.logger import get_logger, log_info, log_error, log_warning, log_debug
from src.common.constants import TypeMsg, MessagePatterns
from src.common.exceptions import RpcError, handle_error

__all__ = [
    "get_logger",
    "log_info",
    "log_error",
    "log_warning",
    "log_debug",
    "TypeMsg",
    "MessagePatterns",
    "RpcError",
    "handle_error",
]
