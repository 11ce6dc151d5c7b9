"""Navigation state dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from burrow.models.file_entry import FileEntry

ViewMode = Literal["list", "grid"]
SortField = Literal["name", "size", "modified", "type"]
SortOrder = Literal["asc", "desc"]

VIEW_MODES: tuple[str, ...] = ("list", "grid")
SORT_FIELDS: tuple[str, ...] = ("name", "size", "modified", "type")
SORT_ORDERS: tuple[str, ...] = ("asc", "desc")


@dataclass(slots=True)
class NavigationState:
    """UI-visible browser state, owned and mutated by a single Navigator."""

    current_path: str = ""
    items: list[FileEntry] = field(default_factory=list)
    selected_items: list[FileEntry] = field(default_factory=list)
    history: list[str] = field(default_factory=list)
    history_index: int = -1
    loading: bool = False
    error: str | None = None
    view_mode: ViewMode = "list"
    sort_field: SortField = "name"
    sort_order: SortOrder = "asc"
    search_query: str = ""
