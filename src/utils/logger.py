"""
Console logging with colors, emojis, and one line per event.
"""

import logging
import os
import sys
from datetime import datetime
from typing import Optional


class ColorFormatter(logging.Formatter):
    """Formatter that adds colors, level emojis and a component emoji."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
        "BOLD": "\033[1m",
        "DIM": "\033[2m",
    }

    EMOJIS = {
        "DEBUG": "🔍",
        "INFO": "✅",
        "WARNING": "⚠️",
        "ERROR": "❌",
        "CRITICAL": "🚨",
    }

    # Matched against the logger name, first hit wins
    COMPONENT_EMOJIS = {
        "api": "🌐",
        "scheduler": "⏰",
        "payment": "💳",
        "tracking": "📍",
        "wizard": "📦",
        "admin": "🛡️",
        "auth": "🔐",
        "supabase": "💾",
    }

    def format(self, record):
        level_color = self.COLORS.get(record.levelname, "")
        reset = self.COLORS["RESET"]
        bold = self.COLORS["BOLD"]
        dim = self.COLORS["DIM"]

        emoji = self.EMOJIS.get(record.levelname, "📝")

        component_emoji = ""
        for component, comp_emoji in self.COMPONENT_EMOJIS.items():
            if component in record.name.lower():
                component_emoji = comp_emoji
                break

        timestamp = datetime.now().strftime("%H:%M:%S")
        level = f"{record.levelname:<8}"
        logger_name = record.name.split(".")[-1][:12]

        formatted_msg = (
            f"{dim}[{timestamp}]{reset} "
            f"{emoji} {level_color}{bold}{level}{reset} "
            f"{dim}│{reset} "
            f"{component_emoji} {bold}{logger_name:<12}{reset} "
            f"{dim}│{reset} "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted_msg += f"\n{self.formatException(record.exc_info)}"

        return formatted_msg


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Setup a console logger with the ColorFormatter.

    Args:
        name: Logger name (e.g. "amerex.api")
        level: Log level name; falls back to LOG_LEVEL env, then INFO

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers on re-import
    if logger.handlers:
        return logger

    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level_name, logging.INFO))
    handler.setFormatter(ColorFormatter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def log_api_request(
    logger: logging.Logger, method: str, endpoint: str, params: Optional[dict] = None
):
    """Log an incoming API request."""
    params_str = f" {params}" if params else ""
    logger.info(f"🌐 {method} {endpoint}{params_str}")


def log_database_operation(
    logger: logging.Logger, operation: str, count: int, table: str
):
    """Log a database write."""
    logger.info(f"💾 {operation} {count} records to {table}")


def log_error_with_context(
    logger: logging.Logger, message: str, error: Exception, context: Optional[dict] = None
):
    """Log an exception with a stack trace and the request context that caused it."""
    context_str = f" | context={context}" if context else ""
    logger.error(f"{message}: {type(error).__name__} - {error}{context_str}", exc_info=error)


# Module-level loggers
api_logger = setup_logger("amerex.api")
supabase_logger = setup_logger("amerex.supabase")
payment_logger = setup_logger("amerex.payment")
wizard_logger = setup_logger("amerex.wizard")
tracking_logger = setup_logger("amerex.tracking")
admin_logger = setup_logger("amerex.admin")
auth_logger = setup_logger("amerex.auth")
scheduler_logger = setup_logger("amerex.scheduler")


def log_success(logger: logging.Logger, message: str):
    """Log a successful outcome with an explicit [OK] tag."""
    logger.info(f"[OK] {message}")


def log_failure(logger: logging.Logger, message: str):
    """Log a failed outcome with an explicit [FAIL] tag.

    Used for side effects whose failure must not fail the request
    (confirmation emails, profile bootstrap), so it logs at WARNING.
    """
    logger.warning(f"[FAIL] {message}")
