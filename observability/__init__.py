"""Event logging and timing helpers for the mock interview backend."""
from .logger import configure_logging, log_event
from .tracing import span

__all__ = ["configure_logging", "log_event", "span"]
