"""
Curation core: collection, duplicates, saves, analytics and export.
"""

from synthverify.curation.analytics import AnalyticsCache, calculate_analytics
from synthverify.curation.collection import ItemCollection
from synthverify.curation.dedup import DuplicateResolver, analyze_duplicates
from synthverify.curation.save import OperationResult, SaveCoordinator
from synthverify.curation.workspace import CurationWorkspace, WorkspaceRegistry

__all__ = [
    "AnalyticsCache",
    "CurationWorkspace",
    "DuplicateResolver",
    "ItemCollection",
    "OperationResult",
    "SaveCoordinator",
    "WorkspaceRegistry",
    "analyze_duplicates",
    "calculate_analytics",
]
