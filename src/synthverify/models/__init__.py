"""
Data models for SynthVerify.
"""

from synthverify.models.analytics import AnalyticsSnapshot
from synthverify.models.item import Item, SaveState

__all__ = ["AnalyticsSnapshot", "Item", "SaveState"]
