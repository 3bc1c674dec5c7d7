"""MalleableEngine Runtime — settings and structured logging."""
from .config import Settings, get_settings  # noqa: F401
from .logging import setup_logging, get_logger  # noqa: F401
