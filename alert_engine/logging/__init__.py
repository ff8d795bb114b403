"""
Логирование заданий движка оповещений
"""

from .jobs import JobLogger, configure_logging

__all__ = ["JobLogger", "configure_logging"]
