"""Structured logging adapters.

Usage:
    from src.core.container import get_logger

    logger = get_logger()
"""

from src.infrastructure.logging.console_adapter import ConsoleAdapter

__all__ = ["ConsoleAdapter"]
