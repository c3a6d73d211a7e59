"""Logging and activity trail package."""

from expense_manager.audit.logger import ActivityLogger, configure_logging, get_logger

__all__ = ["ActivityLogger", "configure_logging", "get_logger"]
