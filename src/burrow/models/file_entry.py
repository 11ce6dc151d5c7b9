"""Directory listing dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(slots=True, frozen=True)
class Permissions:
    """Access flags for the current user, each checked independently."""

    readable: bool = False
    writable: bool = False
    executable: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {"readable": self.readable, "writable": self.writable, "executable": self.executable}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Permissions:
        return cls(
            readable=bool(data.get("readable", False)),
            writable=bool(data.get("writable", False)),
            executable=bool(data.get("executable", False)),
        )


@dataclass(slots=True)
class FileEntry:
    """Single file or directory in a listing.

    ``extension`` is the lowercase suffix including the dot (``.txt``).
    It is ``None`` for directories and for names without a suffix.
    ``created`` is best-effort: platforms without a birth time report
    the inode change time instead.
    """

    name: str
    path: str
    is_directory: bool
    size: int
    modified: datetime
    created: datetime
    extension: str | None = None
    permissions: Permissions | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "is_directory": self.is_directory,
            "size": self.size,
            "modified": self.modified.isoformat(),
            "created": self.created.isoformat(),
        }
        if self.extension is not None:
            data["extension"] = self.extension
        if self.permissions is not None:
            data["permissions"] = self.permissions.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileEntry:
        permissions = data.get("permissions")
        return cls(
            name=data["name"],
            path=data["path"],
            is_directory=bool(data["is_directory"]),
            size=int(data["size"]),
            modified=datetime.fromisoformat(data["modified"]),
            created=datetime.fromisoformat(data["created"]),
            extension=data.get("extension"),
            permissions=Permissions.from_dict(permissions) if permissions is not None else None,
        )


@dataclass(slots=True)
class DirectoryContents:
    """Result of listing a directory.

    ``parent`` is ``None`` when ``path`` is a filesystem root.
    """

    path: str
    items: list[FileEntry] = field(default_factory=list)
    parent: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.path,
            "items": [item.to_dict() for item in self.items],
        }
        if self.parent is not None:
            data["parent"] = self.parent
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DirectoryContents:
        return cls(
            path=data["path"],
            items=[FileEntry.from_dict(item) for item in data.get("items", [])],
            parent=data.get("parent"),
        )
