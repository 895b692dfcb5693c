"""Core helpers shared by the bot layer: logging and update identity resolution.

This package must NEVER import from ``bot/``.
"""

from core.identity import get_identity, update_kind
from core.logger import CourierLogger

__all__ = [
    "get_identity",
    "update_kind",
    "CourierLogger",
]
