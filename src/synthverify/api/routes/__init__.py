"""
API routes for SynthVerify.
"""

from synthverify.api.routes import (
    analytics,
    duplicates,
    export,
    items,
    notifications,
    sessions,
)

__all__ = [
    "analytics",
    "duplicates",
    "export",
    "items",
    "notifications",
    "sessions",
]
