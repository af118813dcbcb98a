"""Logging facade exports.

Where: platform/logging/__init__.py
What: Re-export the shared library logger, setup helper, and Rich handler.
Why: Provide a single canonical import path for every module.
"""

from __future__ import annotations

from .config import logger, setup_logger
from .handlers import RequestEventRichHandler

__all__ = [
    "RequestEventRichHandler",
    "logger",
    "setup_logger",
]
