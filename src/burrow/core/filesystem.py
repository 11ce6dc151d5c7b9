"""Filesystem access layer: listings, stats and file operations.

Reads (``read_directory``, ``get_file_stats``) raise :class:`FileSystemError`
with a prefixed message.  Mutations never raise; every fault is captured
into an :class:`OperationResult` so it can cross the bridge as data.
"""

from __future__ import annotations

import errno
import locale
import logging
import os
import shutil
import stat
import sys
from datetime import datetime, timezone
from typing import Callable

from burrow.core import desktop
from burrow.models.file_entry import DirectoryContents, FileEntry, Permissions
from burrow.models.operation_result import OperationResult
from burrow.utils import home_dir, user_dir

log = logging.getLogger(__name__)

SkipCallback = Callable[[str, str], None]  # (path, message)

# Faults a path argument can raise: OS errors, and ValueError for embedded NUL bytes.
_FAULTS = (OSError, ValueError)


class FileSystemError(OSError):
    """Raised when a listing or stat of the requested path fails."""


def _cause(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def _has_access(path: str, mode: int) -> bool:
    """Check one access flag; any fault counts as denied."""
    try:
        return os.access(path, mode)
    except (OSError, ValueError):
        return False


def read_permissions(path: str) -> Permissions:
    """Probe read, write and execute access independently."""
    return Permissions(
        readable=_has_access(path, os.R_OK),
        writable=_has_access(path, os.W_OK),
        executable=_has_access(path, os.X_OK),
    )


def file_extension(name: str) -> str | None:
    """Return the lowercase extension of *name* including the dot, or None."""
    ext = os.path.splitext(name)[1]
    return ext.lower() if ext else None


def _timestamp(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _build_entry(name: str, path: str, st: os.stat_result) -> FileEntry:
    is_dir = stat.S_ISDIR(st.st_mode)
    created = getattr(st, "st_birthtime", None)
    return FileEntry(
        name=name,
        path=path,
        is_directory=is_dir,
        size=st.st_size,
        modified=_timestamp(st.st_mtime),
        created=_timestamp(created if created is not None else st.st_ctime),
        extension=None if is_dir else file_extension(name),
        permissions=read_permissions(path),
    )


def sort_key(entry: FileEntry) -> tuple[bool, str, str]:
    """Directories first, then locale-aware case-insensitive name.

    The raw name breaks ties between names that only differ in case.
    """
    return (not entry.is_directory, locale.strxfrm(entry.name.casefold()), entry.name)


def check_entry_name(name: str) -> None:
    """Reject anything but a single path component.

    Raises:
        ValueError: If *name* is empty, absolute, a dot entry or contains a separator.
    """
    separators = {os.sep, os.altsep} - {None}
    if not name or name in (os.curdir, os.pardir) or any(sep in name for sep in separators):
        raise ValueError(f"Invalid name '{name}': must be a single path component")


def _ignore_missing(exc: BaseException) -> None:
    if not isinstance(exc, FileNotFoundError):
        raise exc


def _remove_tree(path: str) -> None:
    """Remove a directory tree, tolerating descendants that vanish meanwhile."""
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=lambda func, p, exc: _ignore_missing(exc))
    else:
        shutil.rmtree(path, onerror=lambda func, p, info: _ignore_missing(info[1]))


def _raise(exc: OSError) -> None:
    raise exc


def _copy_tree(source: str, destination: str) -> None:
    """Mirror a directory tree.

    The whole directory structure, empty directories included, is created
    before any file is copied.  Symlinks are recreated as symlinks.
    """
    src_real = os.path.realpath(source)
    dest_real = os.path.realpath(destination)
    if os.path.commonpath([src_real, dest_real]) == src_real:
        raise OSError(errno.EINVAL, "Cannot copy a directory into itself", destination)

    files: list[tuple[str, str]] = []
    links: list[tuple[str, str]] = []

    os.makedirs(destination, exist_ok=True)
    for root, dirnames, filenames in os.walk(source, onerror=_raise):
        rel = os.path.relpath(root, source)
        dest_root = destination if rel == os.curdir else os.path.join(destination, rel)
        for name in dirnames:
            src = os.path.join(root, name)
            if os.path.islink(src):
                links.append((src, os.path.join(dest_root, name)))
            else:
                os.makedirs(os.path.join(dest_root, name), exist_ok=True)
        for name in filenames:
            src = os.path.join(root, name)
            pair = (src, os.path.join(dest_root, name))
            (links if os.path.islink(src) else files).append(pair)

    for src, dst in links:
        os.symlink(os.readlink(src), dst)
    for src, dst in files:
        shutil.copyfile(src, dst)


class FileSystemService:
    """Stateless wrapper around OS file operations.

    Method names match the operation whitelist of the command bridge.
    """

    # -- Reads --

    def read_directory(self, path: str, on_skip: SkipCallback | None = None) -> DirectoryContents:
        """List the immediate children of *path*.

        Children that cannot be stat'd are dropped from the result and
        reported through *on_skip*; they never fail the listing.

        Raises:
            FileSystemError: If *path* itself cannot be enumerated.
        """
        dir_path = os.path.abspath(path)
        try:
            with os.scandir(dir_path) as it:
                children = [(child.name, child.path) for child in it]
        except _FAULTS as e:
            raise FileSystemError(f"Failed to read directory: {_cause(e)}") from e

        entries: list[FileEntry] = []
        for name, child_path in children:
            try:
                st = os.stat(child_path)
            except _FAULTS as e:
                log.warning("Could not access item: %s (%s)", child_path, e)
                if on_skip:
                    on_skip(child_path, _cause(e))
                continue
            entries.append(_build_entry(name, child_path, st))

        entries.sort(key=sort_key)

        parent = os.path.dirname(dir_path)
        return DirectoryContents(
            path=dir_path,
            items=entries,
            parent=parent if parent != dir_path else None,
        )

    def get_file_stats(self, path: str) -> FileEntry:
        """Stat a single path.

        Raises:
            FileSystemError: If *path* cannot be stat'd.
        """
        try:
            st = os.stat(path)
        except _FAULTS as e:
            raise FileSystemError(f"Failed to get file stats: {_cause(e)}") from e
        name = os.path.basename(os.path.normpath(path)) or path
        return _build_entry(name, path, st)

    # -- Mutations --

    def create_folder(self, parent_path: str, name: str) -> OperationResult:
        """Create exactly one directory level at *parent_path*/*name*."""
        target = os.path.join(parent_path, name)
        try:
            check_entry_name(name)
            os.mkdir(target)
        except _FAULTS as e:
            return OperationResult.failed(f"Failed to create folder: {_cause(e)}")
        log.debug("Created folder %s", target)
        return OperationResult.ok()

    def delete_item(self, path: str) -> OperationResult:
        """Delete a file, or a directory recursively.

        The target is inspected without following symlinks, so deleting a
        link never touches the tree it points to.
        """
        try:
            st = os.lstat(path)
            if stat.S_ISDIR(st.st_mode):
                _remove_tree(path)
            else:
                os.unlink(path)
        except _FAULTS as e:
            return OperationResult.failed(f"Failed to delete item: {_cause(e)}")
        log.debug("Deleted %s (%d bytes)", path, st.st_size)
        return OperationResult.ok()

    def rename_item(self, old_path: str, new_path: str) -> OperationResult:
        """Rename or move a file or directory."""
        try:
            os.rename(old_path, new_path)
        except _FAULTS as e:
            return OperationResult.failed(f"Failed to rename item: {_cause(e)}")
        log.debug("Renamed %s -> %s", old_path, new_path)
        return OperationResult.ok()

    def copy_item(self, source: str, destination: str) -> OperationResult:
        """Copy a file, or a directory with its whole subtree."""
        try:
            st = os.stat(source)
            if stat.S_ISDIR(st.st_mode):
                _copy_tree(source, destination)
            else:
                shutil.copyfile(source, destination)
        except _FAULTS as e:
            return OperationResult.failed(f"Failed to copy item: {_cause(e)}")
        log.debug("Copied %s -> %s", source, destination)
        return OperationResult.ok()

    def open_file(self, path: str) -> OperationResult:
        """Open *path* with the default application."""
        try:
            desktop.open_path(path)
        except Exception as e:
            return OperationResult.failed(f"Failed to open file: {_cause(e)}")
        return OperationResult.ok()

    def show_in_folder(self, path: str) -> OperationResult:
        """Reveal *path* in the system file manager."""
        try:
            desktop.reveal_path(path)
        except Exception as e:
            return OperationResult.failed(f"Failed to show in folder: {_cause(e)}")
        return OperationResult.ok()

    # -- Well-known directories --

    def get_home_directory(self) -> str:
        return str(home_dir())

    def get_desktop_directory(self) -> str:
        return str(user_dir("desktop"))

    def get_documents_directory(self) -> str:
        return str(user_dir("documents"))

    def get_downloads_directory(self) -> str:
        return str(user_dir("downloads"))
