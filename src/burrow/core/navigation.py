"""Navigation and selection engine driving a file browser view."""

from __future__ import annotations

import locale
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from burrow.core.bridge import FileSystemClient, TransportError
from burrow.core.filesystem import FileSystemError, check_entry_name
from burrow.models.file_entry import DirectoryContents, FileEntry
from burrow.models.navigation import (
    SORT_FIELDS,
    SORT_ORDERS,
    VIEW_MODES,
    NavigationState,
    SortField,
    SortOrder,
    ViewMode,
)
from burrow.models.operation_result import OperationResult
from burrow.settings import Settings

log = logging.getLogger(__name__)

_DEFAULT_WORKERS = 4

_SORT_KEYS: dict[str, Callable[[FileEntry], Any]] = {
    "name": lambda e: (locale.strxfrm(e.name.casefold()), e.name),
    "size": lambda e: e.size,
    "modified": lambda e: e.modified,
    "type": lambda e: e.extension or "",
}


class Navigator:
    """Owns a :class:`NavigationState` and every transition on it.

    All filesystem access goes through a :class:`FileSystemClient`.
    Read failures and failed mutations end up in ``state.error``;
    nothing here raises for a filesystem fault.
    """

    def __init__(
        self,
        client: FileSystemClient,
        settings: Settings | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._client = client
        self.state = NavigationState()
        if settings is not None:
            self._apply_settings(settings)
        if max_workers is None:
            max_workers = settings.get("navigation.max_workers", _DEFAULT_WORKERS) if settings else _DEFAULT_WORKERS
        self._max_workers = max(1, int(max_workers))

    def _apply_settings(self, settings: Settings) -> None:
        view_mode = settings.get("navigation.view_mode")
        if view_mode in VIEW_MODES:
            self.state.view_mode = view_mode
        sort_field = settings.get("navigation.sort_field")
        if sort_field in SORT_FIELDS:
            self.state.sort_field = sort_field
        sort_order = settings.get("navigation.sort_order")
        if sort_order in SORT_ORDERS:
            self.state.sort_order = sort_order

    # -- Derived state --

    @property
    def filtered_items(self) -> list[FileEntry]:
        """Items matching the search query, directories first, then sorted."""
        items = list(self.state.items)
        if self.state.search_query:
            query = self.state.search_query.casefold()
            items = [item for item in items if query in item.name.casefold()]

        items.sort(key=_SORT_KEYS[self.state.sort_field], reverse=self.state.sort_order == "desc")
        items.sort(key=lambda item: not item.is_directory)
        return items

    @property
    def can_navigate_back(self) -> bool:
        return self.state.history_index > 0

    @property
    def can_navigate_forward(self) -> bool:
        return self.state.history_index < len(self.state.history) - 1

    @property
    def can_navigate_up(self) -> bool:
        path = self.state.current_path
        return bool(path) and os.path.dirname(path) != path

    # -- Internals --

    @contextmanager
    def _busy(self) -> Iterator[None]:
        """Mark the state as loading for the duration of one operation."""
        self.state.loading = True
        self.state.error = None
        try:
            yield
        finally:
            self.state.loading = False

    def _report(self, message: str) -> None:
        if self.state.error:
            self.state.error = f"{self.state.error}\n{message}"
        else:
            self.state.error = message

    def _load(self, path: str) -> DirectoryContents | None:
        """Read *path* into the state without touching history."""
        try:
            contents = self._client.read_directory(path)
        except FileSystemError as e:
            log.info("Cannot load %s: %s", path, e)
            self._report(str(e))
            return None
        self.state.current_path = contents.path
        self.state.items = contents.items
        self.state.selected_items = []
        return contents

    def _reload_current(self) -> None:
        if self.state.current_path:
            self._load(self.state.current_path)

    def _push_history(self, path: str) -> None:
        state = self.state
        if state.history_index == -1 or state.history[state.history_index] != path:
            del state.history[state.history_index + 1:]
            state.history.append(path)
            state.history_index = len(state.history) - 1

    def _run_batch(
        self,
        items: list[FileEntry],
        operation: Callable[[FileEntry], OperationResult],
    ) -> list[str]:
        """Apply *operation* to every item and return '<name>: <error>' lines.

        Items run concurrently; failures are reported in selection order.
        """
        if len(items) > 1 and self._max_workers > 1:
            with ThreadPoolExecutor(max_workers=min(self._max_workers, len(items))) as executor:
                results = list(executor.map(operation, items))
        else:
            results = [operation(item) for item in items]
        return [f"{item.name}: {result.error}" for item, result in zip(items, results) if not result.success]

    def _navigate_well_known(self, resolve: Callable[[], str], failure: str) -> None:
        try:
            path = resolve()
        except TransportError as e:
            self.state.error = f"{failure}: {e}"
            return
        self.navigate_to(path)

    # -- Navigation --

    def initialize(self) -> None:
        """Start the session in the home directory."""
        self._navigate_well_known(self._client.get_home_directory, "Failed to initialize")

    def navigate_to(self, path: str) -> None:
        """Load *path* and record it in the history."""
        with self._busy():
            contents = self._load(path)
            if contents is not None:
                self._push_history(contents.path)

    def navigate_up(self) -> None:
        if not self.can_navigate_up:
            return
        parent = os.path.dirname(self.state.current_path) or os.sep
        self.navigate_to(parent)

    def navigate_back(self) -> None:
        if not self.can_navigate_back:
            return
        self.state.history_index -= 1
        with self._busy():
            self._load(self.state.history[self.state.history_index])

    def navigate_forward(self) -> None:
        if not self.can_navigate_forward:
            return
        self.state.history_index += 1
        with self._busy():
            self._load(self.state.history[self.state.history_index])

    def refresh(self) -> None:
        if not self.state.current_path:
            return
        with self._busy():
            self._load(self.state.current_path)

    def navigate_to_home(self) -> None:
        self._navigate_well_known(self._client.get_home_directory, "Failed to open home directory")

    def navigate_to_desktop(self) -> None:
        self._navigate_well_known(self._client.get_desktop_directory, "Failed to open desktop directory")

    def navigate_to_documents(self) -> None:
        self._navigate_well_known(self._client.get_documents_directory, "Failed to open documents directory")

    def navigate_to_downloads(self) -> None:
        self._navigate_well_known(self._client.get_downloads_directory, "Failed to open downloads directory")

    # -- Selection --

    def select(self, item: FileEntry, multi_select: bool = False) -> None:
        """Select *item*; with *multi_select* toggle it instead of replacing."""
        selected = self.state.selected_items
        if not multi_select:
            self.state.selected_items = [item]
            return
        for index, current in enumerate(selected):
            if current.path == item.path:
                del selected[index]
                return
        selected.append(item)

    def clear_selection(self) -> None:
        self.state.selected_items = []

    def select_all(self) -> None:
        self.state.selected_items = list(self.state.items)

    # -- File operations --

    def open_item(self, item: FileEntry) -> OperationResult:
        """Enter a directory, or open a file with its default application."""
        if item.is_directory:
            self.navigate_to(item.path)
            if self.state.error:
                return OperationResult.failed(self.state.error)
            return OperationResult.ok()

        result = self._client.open_file(item.path)
        if not result.success:
            self.state.error = result.error or "Failed to open file"
        return result

    def show_in_folder(self, item: FileEntry) -> OperationResult:
        result = self._client.show_in_folder(item.path)
        if not result.success:
            self.state.error = result.error or "Failed to show in folder"
        return result

    def create_folder(self, name: str) -> OperationResult:
        """Create *name* in the current directory, then refresh."""
        with self._busy():
            result = self._client.create_folder(self.state.current_path, name)
            if not result.success:
                self._report(result.error or "Failed to create folder")
            self._reload_current()
        return result

    def rename_item(self, item: FileEntry, new_name: str) -> OperationResult:
        """Rename *item* in place, replacing only its last path component."""
        try:
            check_entry_name(new_name)
        except ValueError as e:
            result = OperationResult.failed(f"Failed to rename item: {e}")
            self.state.error = result.error
            return result
        new_path = os.path.join(os.path.dirname(item.path), new_name)
        with self._busy():
            result = self._client.rename_item(item.path, new_path)
            if not result.success:
                self._report(result.error or "Failed to rename item")
            self._reload_current()
        return result

    def delete_selected(self) -> OperationResult:
        """Delete every selected item.

        Partial failure still counts as a completed operation: the result
        is successful and carries the aggregated per-item errors.
        """
        items = list(self.state.selected_items)
        if not items:
            return OperationResult.ok()

        with self._busy():
            errors = self._run_batch(items, lambda item: self._client.delete_item(item.path))
            message = "Failed to delete some items:\n" + "\n".join(errors) if errors else None
            if message:
                self._report(message)
            self._reload_current()
        return OperationResult(success=True, error=message)

    def copy_selected(self, destination: str) -> OperationResult:
        """Copy every selected item into the *destination* directory."""
        items = list(self.state.selected_items)
        if not items:
            return OperationResult.ok()

        with self._busy():
            errors = self._run_batch(
                items,
                lambda item: self._client.copy_item(item.path, os.path.join(destination, item.name)),
            )
            message = "Failed to copy some items:\n" + "\n".join(errors) if errors else None
            if message:
                self._report(message)
            self._reload_current()
        return OperationResult(success=True, error=message)

    # -- Preferences --

    def set_view_mode(self, mode: ViewMode) -> None:
        if mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode '{mode}'")
        self.state.view_mode = mode

    def set_sorting(self, field: SortField, order: SortOrder | None = None) -> None:
        """Sort by *field*.

        Without *order*, choosing the current field again toggles the
        order and choosing a new field resets it to ascending.
        """
        if field not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field '{field}'")
        if order is not None:
            if order not in SORT_ORDERS:
                raise ValueError(f"Unknown sort order '{order}'")
            self.state.sort_order = order
        elif field == self.state.sort_field:
            self.state.sort_order = "desc" if self.state.sort_order == "asc" else "asc"
        else:
            self.state.sort_order = "asc"
        self.state.sort_field = field

    def set_search_query(self, query: str) -> None:
        self.state.search_query = query
