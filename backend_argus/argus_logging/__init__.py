"""
Structured logging for backend_argus.

JSON logs with timestamp, event_type and keyword context.
"""

from backend_argus.argus_logging.logger import bind_token, get_logger

__all__ = ["bind_token", "get_logger"]
