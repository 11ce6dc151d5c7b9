"""D-Bus service exposing the filesystem bridge to the UI process.

D-Bus methods use PascalCase per D-Bus convention, and type signatures
like "s" and "(ss)" are D-Bus protocol types, not Python syntax.
"""

from __future__ import annotations

import asyncio
import logging

from dbus_next.aio import MessageBus
from dbus_next.service import ServiceInterface, method, signal
from dbus_next import BusType, DBusError

from burrow.core.bridge import BridgeError, handle
from burrow.core.filesystem import FileSystemError, FileSystemService
from burrow.utils import init_locale

log = logging.getLogger(__name__)

BUS_NAME = "io.github.burrow"
OBJECT_PATH = "/io/github/burrow"
INTERFACE = "io.github.burrow.FileSystem"

READ_FAILED_ERROR = "io.github.burrow.Error.ReadFailed"
NOT_ALLOWED_ERROR = "io.github.burrow.Error.NotAllowed"


# noinspection PyPep8Naming
class FileSystemDBusService(ServiceInterface):
    """D-Bus service interface for the whitelisted filesystem operations."""

    def __init__(self, service: FileSystemService | None = None) -> None:
        super().__init__(INTERFACE)
        self._service = service or FileSystemService()

    def _handle(self, operation: str, *args: str) -> str:
        on_skip = None
        if operation == "read_directory":
            def on_skip(path: str, message: str) -> None:
                self.ItemSkipped(path, message)

        try:
            return handle(self._service, operation, args, on_skip=on_skip)
        except FileSystemError as e:
            raise DBusError(READ_FAILED_ERROR, str(e))
        except BridgeError as e:
            raise DBusError(NOT_ALLOWED_ERROR, str(e))

    @method()
    def ReadDirectory(self, path: "s") -> "s":  # type: ignore[override]
        """List a directory, returning DirectoryContents as JSON."""
        return self._handle("read_directory", path)

    @method()
    def GetFileStats(self, path: "s") -> "s":  # type: ignore[override]
        """Stat a path, returning a FileEntry as JSON."""
        return self._handle("get_file_stats", path)

    @method()
    def CreateFolder(self, parent_path: "s", name: "s") -> "s":  # type: ignore[override]
        return self._handle("create_folder", parent_path, name)

    @method()
    def DeleteItem(self, path: "s") -> "s":  # type: ignore[override]
        return self._handle("delete_item", path)

    @method()
    def RenameItem(self, old_path: "s", new_path: "s") -> "s":  # type: ignore[override]
        return self._handle("rename_item", old_path, new_path)

    @method()
    def CopyItem(self, source: "s", destination: "s") -> "s":  # type: ignore[override]
        return self._handle("copy_item", source, destination)

    @method()
    def OpenFile(self, path: "s") -> "s":  # type: ignore[override]
        return self._handle("open_file", path)

    @method()
    def ShowInFolder(self, path: "s") -> "s":  # type: ignore[override]
        return self._handle("show_in_folder", path)

    @method()
    def GetHomeDirectory(self) -> "s":  # type: ignore[override]
        return self._handle("get_home_directory")

    @method()
    def GetDesktopDirectory(self) -> "s":  # type: ignore[override]
        return self._handle("get_desktop_directory")

    @method()
    def GetDocumentsDirectory(self) -> "s":  # type: ignore[override]
        return self._handle("get_documents_directory")

    @method()
    def GetDownloadsDirectory(self) -> "s":  # type: ignore[override]
        return self._handle("get_downloads_directory")

    @signal()
    def ItemSkipped(self, path: str, message: str) -> "(ss)":  # type: ignore[override]
        return [path, message]


async def run_service(bus_type: BusType = BusType.SESSION) -> None:
    """Start the D-Bus service."""
    bus = await MessageBus(bus_type=bus_type).connect()
    service = FileSystemDBusService()
    bus.export(OBJECT_PATH, service)
    await bus.request_name(BUS_NAME)
    log.info("D-Bus service started on %s", BUS_NAME)
    await bus.wait_for_disconnect()


def start_service(system_bus: bool = False) -> None:
    """Entry point to start the D-Bus service."""
    init_locale()
    asyncio.run(run_service(BusType.SYSTEM if system_bus else BusType.SESSION))
