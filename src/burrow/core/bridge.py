"""Command bridge between the UI side and the privileged filesystem service.

Only the operations listed in :data:`OPERATIONS` may cross the bridge.
Every call carries string arguments and returns JSON text; the typed
:class:`FileSystemClient` decodes it back into models.
"""

from __future__ import annotations

import json
import logging
from typing import Any, NamedTuple, Protocol

from burrow.core.filesystem import FileSystemError, FileSystemService, SkipCallback
from burrow.core.privileges import PrivilegeError, is_root, pkexec_available, run_privileged_call
from burrow.models.file_entry import DirectoryContents, FileEntry
from burrow.models.operation_result import OperationResult

log = logging.getLogger(__name__)


class Operation(NamedTuple):
    """Whitelisted bridge operation."""

    member: str
    """D-Bus member name (PascalCase)."""
    params: tuple[str, ...]
    failure: str
    """Message prefix used when the call itself cannot be delivered."""


OPERATIONS: dict[str, Operation] = {
    "read_directory": Operation("ReadDirectory", ("path",), "Failed to read directory"),
    "get_file_stats": Operation("GetFileStats", ("path",), "Failed to get file stats"),
    "create_folder": Operation("CreateFolder", ("parent_path", "name"), "Failed to create folder"),
    "delete_item": Operation("DeleteItem", ("path",), "Failed to delete item"),
    "rename_item": Operation("RenameItem", ("old_path", "new_path"), "Failed to rename item"),
    "copy_item": Operation("CopyItem", ("source", "destination"), "Failed to copy item"),
    "open_file": Operation("OpenFile", ("path",), "Failed to open file"),
    "show_in_folder": Operation("ShowInFolder", ("path",), "Failed to show in folder"),
    "get_home_directory": Operation("GetHomeDirectory", (), "Failed to get home directory"),
    "get_desktop_directory": Operation("GetDesktopDirectory", (), "Failed to get desktop directory"),
    "get_documents_directory": Operation("GetDocumentsDirectory", (), "Failed to get documents directory"),
    "get_downloads_directory": Operation("GetDownloadsDirectory", (), "Failed to get downloads directory"),
}


class BridgeError(Exception):
    """Raised when a call is not allowed across the bridge."""


class TransportError(Exception):
    """Raised when a call cannot be delivered to the service."""


def check_call(operation: str, args: list[str] | tuple[str, ...]) -> Operation:
    op = OPERATIONS.get(operation)
    if op is None:
        raise BridgeError(f"Operation '{operation}' is not allowed")
    if len(args) != len(op.params):
        raise BridgeError(f"Operation '{operation}' takes {len(op.params)} argument(s), got {len(args)}")
    if not all(isinstance(a, str) for a in args):
        raise BridgeError(f"Operation '{operation}' only accepts string arguments")
    return op


def invoke(
    service: FileSystemService,
    operation: str,
    args: list[str] | tuple[str, ...],
    on_skip: SkipCallback | None = None,
) -> Any:
    """Run a whitelisted operation and return its JSON-ready result.

    Raises:
        BridgeError: If the call is not whitelisted or malformed.
        FileSystemError: If a read of the requested path fails.
    """
    check_call(operation, args)
    log.debug("Bridge call: %s%r", operation, tuple(args))
    if operation == "read_directory":
        result = service.read_directory(args[0], on_skip=on_skip)
    else:
        result = getattr(service, operation)(*args)
    return result if isinstance(result, str) else result.to_dict()


def handle(
    service: FileSystemService,
    operation: str,
    args: list[str] | tuple[str, ...],
    on_skip: SkipCallback | None = None,
) -> str:
    """Run a whitelisted operation and return its result as JSON text."""
    return json.dumps(invoke(service, operation, args, on_skip=on_skip))


def handle_envelope(service: FileSystemService, operation: str, args: list[str]) -> dict[str, Any]:
    """Run a call and wrap the outcome for transports without error replies.

    Returns ``{"result": ...}`` on success, ``{"error": ..., "kind": ...}``
    where kind is 'read' for read failures and 'bridge' for rejected calls.
    """
    try:
        return {"result": invoke(service, operation, args)}
    except FileSystemError as e:
        return {"error": str(e), "kind": "read"}
    except BridgeError as e:
        return {"error": str(e), "kind": "bridge"}


# -- Transports --


class Transport(Protocol):
    def call(self, operation: str, *args: str) -> str: ...


class DirectTransport:
    """In-process transport, used when no privilege boundary is needed."""

    def __init__(self, service: FileSystemService | None = None) -> None:
        self._service = service or FileSystemService()

    def call(self, operation: str, *args: str) -> str:
        return handle(self._service, operation, args)


class PrivilegedTransport:
    """Transport that runs every call as root through pkexec."""

    def call(self, operation: str, *args: str) -> str:
        check_call(operation, args)
        if not pkexec_available():
            log.warning("pkexec not available, cannot escalate privileges")
            raise TransportError("Root access requires pkexec, which is not installed")
        try:
            envelope = run_privileged_call(operation, list(args))
        except PrivilegeError as e:
            raise TransportError(str(e)) from e

        if "error" in envelope:
            if envelope.get("kind") == "read":
                raise FileSystemError(envelope["error"])
            raise BridgeError(envelope["error"])
        return json.dumps(envelope.get("result"))


# -- Client --


class FileSystemClient:
    """Typed API over a bridge transport.

    Reads raise :class:`FileSystemError`; mutations always return an
    :class:`OperationResult`, including when the transport itself fails.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def _call(self, operation: str, *args: str) -> Any:
        raw = self._transport.call(operation, *args)
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise TransportError(f"Invalid response for {operation}: {e}") from e

    def _read(self, operation: str, *args: str) -> Any:
        try:
            return self._call(operation, *args)
        except TransportError as e:
            raise FileSystemError(f"{OPERATIONS[operation].failure}: {e}") from e

    def _mutate(self, operation: str, *args: str) -> OperationResult:
        try:
            return OperationResult.from_dict(self._call(operation, *args))
        except TransportError as e:
            log.warning("%s failed in transport: %s", operation, e)
            return OperationResult.failed(f"{OPERATIONS[operation].failure}: {e}")

    # Reads

    def read_directory(self, path: str) -> DirectoryContents:
        return DirectoryContents.from_dict(self._read("read_directory", path))

    def get_file_stats(self, path: str) -> FileEntry:
        return FileEntry.from_dict(self._read("get_file_stats", path))

    # Mutations

    def create_folder(self, parent_path: str, name: str) -> OperationResult:
        return self._mutate("create_folder", parent_path, name)

    def delete_item(self, path: str) -> OperationResult:
        return self._mutate("delete_item", path)

    def rename_item(self, old_path: str, new_path: str) -> OperationResult:
        return self._mutate("rename_item", old_path, new_path)

    def copy_item(self, source: str, destination: str) -> OperationResult:
        return self._mutate("copy_item", source, destination)

    def open_file(self, path: str) -> OperationResult:
        return self._mutate("open_file", path)

    def show_in_folder(self, path: str) -> OperationResult:
        return self._mutate("show_in_folder", path)

    # Well-known directories

    def get_home_directory(self) -> str:
        return self._call("get_home_directory")

    def get_desktop_directory(self) -> str:
        return self._call("get_desktop_directory")

    def get_documents_directory(self) -> str:
        return self._call("get_documents_directory")

    def get_downloads_directory(self) -> str:
        return self._call("get_downloads_directory")


TRANSPORTS = ("direct", "dbus", "root")


def make_client(transport: str = "direct") -> FileSystemClient:
    """Build a client for one of :data:`TRANSPORTS`."""
    match transport:
        case "direct":
            return FileSystemClient(DirectTransport())
        case "dbus":
            from burrow.dbus_client import DBusTransport

            return FileSystemClient(DBusTransport())
        case "root":
            if is_root():
                return FileSystemClient(DirectTransport())
            return FileSystemClient(PrivilegedTransport())
        case _:
            raise ValueError(f"Unknown transport '{transport}' (expected one of {', '.join(TRANSPORTS)})")
