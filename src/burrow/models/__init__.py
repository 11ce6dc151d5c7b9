"""Burrow data models."""

from burrow.models.file_entry import DirectoryContents, FileEntry, Permissions
from burrow.models.navigation import NavigationState, SortField, SortOrder, ViewMode
from burrow.models.operation_result import OperationResult

__all__ = [
    "DirectoryContents",
    "FileEntry",
    "NavigationState",
    "OperationResult",
    "Permissions",
    "SortField",
    "SortOrder",
    "ViewMode",
]
