"""
API Routes for the Ammin insurance relay.
"""

from . import admin, debug, webhooks

__all__ = ["admin", "debug", "webhooks"]
