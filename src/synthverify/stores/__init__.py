"""
Store implementations consumed by the curation core.
"""

from synthverify.stores.hub import HubUploader
from synthverify.stores.protocols import BackingStore, DatasetUploader, Notifier, SessionStore
from synthverify.stores.sql import SqlBackingStore, SqlSessionStore

__all__ = [
    "BackingStore",
    "DatasetUploader",
    "HubUploader",
    "Notifier",
    "SessionStore",
    "SqlBackingStore",
    "SqlSessionStore",
]
