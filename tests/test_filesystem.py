"""Tests for the filesystem access layer."""

from __future__ import annotations

import locale
import os
import shutil
from datetime import datetime

import pytest

from burrow.core import desktop
from burrow.core.filesystem import (
    FileSystemError,
    FileSystemService,
    _ignore_missing,
    check_entry_name,
    file_extension,
    read_permissions,
)
from burrow.utils import init_locale


@pytest.fixture
def fs():
    return FileSystemService()


class TestReadDirectory:
    def test_directories_first_then_names(self, fs, tree):
        contents = fs.read_directory(str(tree))
        names = [e.name for e in contents.items]
        assert names == ["empty", "folder", "another-file.js", "file.txt", "README"]

    def test_folder_before_files(self, fs, tmp_path):
        (tmp_path / "folder").mkdir()
        (tmp_path / "file.txt").write_text("x")
        (tmp_path / "another-file.js").write_text("x")
        contents = fs.read_directory(str(tmp_path))
        assert [e.name for e in contents.items] == ["folder", "another-file.js", "file.txt"]

    def test_names_compare_case_insensitively(self, fs, tmp_path):
        for name in ("b.txt", "A.txt", "C.txt"):
            (tmp_path / name).write_text("x")
        contents = fs.read_directory(str(tmp_path))
        assert [e.name for e in contents.items] == ["A.txt", "b.txt", "C.txt"]

    def test_entries_are_unique_by_path(self, fs, tree):
        contents = fs.read_directory(str(tree))
        paths = [e.path for e in contents.items]
        assert len(paths) == len(set(paths))
        assert all(p == os.path.join(str(tree), os.path.basename(p)) for p in paths)

    def test_entry_fields(self, fs, tree):
        contents = fs.read_directory(str(tree))
        by_name = {e.name: e for e in contents.items}

        txt = by_name["file.txt"]
        assert not txt.is_directory
        assert txt.size == 5
        assert txt.extension == ".txt"
        assert isinstance(txt.modified, datetime)
        assert txt.modified.tzinfo is not None
        assert txt.permissions is not None and txt.permissions.readable

        folder = by_name["folder"]
        assert folder.is_directory
        assert folder.extension is None

        assert by_name["README"].extension is None

    def test_path_is_canonicalized(self, fs, tree):
        contents = fs.read_directory(str(tree / "folder" / ".."))
        assert contents.path == str(tree)

    def test_parent_present_below_root(self, fs, tree):
        contents = fs.read_directory(str(tree))
        assert contents.parent == str(tree.parent)

    def test_parent_absent_at_root(self, fs):
        contents = fs.read_directory("/")
        assert contents.path == "/"
        assert contents.parent is None

    def test_missing_directory_raises_prefixed_error(self, fs, tmp_path):
        with pytest.raises(FileSystemError) as exc_info:
            fs.read_directory(str(tmp_path / "missing"))
        assert str(exc_info.value).startswith("Failed to read directory: ")
        assert "No such file or directory" in str(exc_info.value)

    def test_file_is_not_a_directory(self, fs, tree):
        with pytest.raises(FileSystemError, match="^Failed to read directory: "):
            fs.read_directory(str(tree / "file.txt"))

    def test_unstatable_child_is_skipped(self, fs, tree):
        os.symlink(str(tree / "nowhere"), str(tree / "dangling"))
        skipped: list[tuple[str, str]] = []

        contents = fs.read_directory(str(tree), on_skip=lambda path, msg: skipped.append((path, msg)))

        names = [e.name for e in contents.items]
        assert "dangling" not in names
        assert "file.txt" in names
        assert [p for p, _ in skipped] == [str(tree / "dangling")]

    def test_permission_check_failure_defaults_flag(self, fs, tree, monkeypatch):
        real_access = os.access

        def flaky_access(path, mode):
            if mode == os.W_OK:
                raise OSError("access check exploded")
            return real_access(path, mode)

        monkeypatch.setattr("burrow.core.filesystem.os.access", flaky_access)
        contents = fs.read_directory(str(tree))

        assert len(contents.items) == 5
        for entry in contents.items:
            assert entry.permissions.writable is False
            assert entry.permissions.readable is True
        folder = next(e for e in contents.items if e.name == "folder")
        assert folder.permissions.executable is True


class TestProbes:
    def test_read_permissions_missing_path(self, tmp_path):
        perms = read_permissions(str(tmp_path / "missing"))
        assert (perms.readable, perms.writable, perms.executable) == (False, False, False)

    def test_read_permissions_rejects_bad_path(self):
        perms = read_permissions("bad\0path")
        assert not perms.readable

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("file.txt", ".txt"),
            ("ARCHIVE.TAR.GZ", ".gz"),
            ("README", None),
            (".bashrc", None),
        ],
    )
    def test_file_extension(self, name, expected):
        assert file_extension(name) == expected


class TestGetFileStats:
    def test_file(self, fs, tree):
        entry = fs.get_file_stats(str(tree / "file.txt"))
        assert entry.name == "file.txt"
        assert entry.path == str(tree / "file.txt")
        assert entry.extension == ".txt"
        assert entry.size == 5

    def test_directory_has_no_extension(self, fs, tmp_path):
        (tmp_path / "conf.d").mkdir()
        entry = fs.get_file_stats(str(tmp_path / "conf.d"))
        assert entry.is_directory
        assert entry.extension is None

    def test_missing(self, fs, tmp_path):
        with pytest.raises(FileSystemError, match="^Failed to get file stats: "):
            fs.get_file_stats(str(tmp_path / "missing"))


class TestCreateFolder:
    def test_creates_one_level(self, fs, tree):
        result = fs.create_folder(str(tree), "new")
        assert result.success
        assert result.error is None
        assert (tree / "new").is_dir()

    def test_does_not_create_missing_parents(self, fs, tree):
        result = fs.create_folder(str(tree / "missing"), "new")
        assert not result.success
        assert result.error.startswith("Failed to create folder: ")
        assert not (tree / "missing").exists()

    def test_existing(self, fs, tree):
        result = fs.create_folder(str(tree), "folder")
        assert not result.success
        assert "File exists" in result.error


class TestDeleteItem:
    def test_file_uses_single_file_path(self, fs, tree, monkeypatch):
        def no_rmtree(*args, **kwargs):
            raise AssertionError("rmtree must not be used for files")

        monkeypatch.setattr(shutil, "rmtree", no_rmtree)
        result = fs.delete_item(str(tree / "file.txt"))
        assert result.success
        assert not (tree / "file.txt").exists()

    def test_directory_uses_recursive_path(self, fs, tree, monkeypatch):
        calls: list[str] = []
        real_rmtree = shutil.rmtree

        def spy(path, *args, **kwargs):
            calls.append(str(path))
            return real_rmtree(path, *args, **kwargs)

        monkeypatch.setattr(shutil, "rmtree", spy)
        result = fs.delete_item(str(tree / "folder"))
        assert result.success
        assert calls == [str(tree / "folder")]
        assert not (tree / "folder").exists()

    def test_symlink_to_directory_removes_only_link(self, fs, tree):
        os.symlink(str(tree / "folder"), str(tree / "link"))
        result = fs.delete_item(str(tree / "link"))
        assert result.success
        assert not os.path.lexists(tree / "link")
        assert (tree / "folder" / "nested.txt").exists()

    def test_missing_target(self, fs, tmp_path):
        result = fs.delete_item(str(tmp_path / "missing"))
        assert not result.success
        assert result.error.startswith("Failed to delete item: ")

    def test_vanished_descendants_are_tolerated(self):
        assert _ignore_missing(FileNotFoundError("gone")) is None
        with pytest.raises(PermissionError):
            _ignore_missing(PermissionError("denied"))


class TestRenameItem:
    def test_rename_in_place(self, fs, tree):
        result = fs.rename_item(str(tree / "file.txt"), str(tree / "renamed.txt"))
        assert result.success
        assert (tree / "renamed.txt").read_text() == "hello"

    def test_move_directory_to_new_parent(self, fs, tree):
        result = fs.rename_item(str(tree / "folder"), str(tree / "empty" / "folder"))
        assert result.success
        assert (tree / "empty" / "folder" / "nested.txt").exists()

    def test_missing_source(self, fs, tree):
        result = fs.rename_item(str(tree / "missing"), str(tree / "other"))
        assert not result.success
        assert result.error.startswith("Failed to rename item: ")


class TestCopyItem:
    def test_copy_file(self, fs, tree):
        result = fs.copy_item(str(tree / "file.txt"), str(tree / "copy.txt"))
        assert result.success
        assert (tree / "copy.txt").read_text() == "hello"
        assert (tree / "file.txt").exists()

    def test_copy_directory_includes_empty_subdirectories(self, fs, tree, tmp_path):
        src = tree / "project"
        (src / "a" / "empty").mkdir(parents=True)
        (src / "b").mkdir()
        (src / "b" / "data.bin").write_bytes(b"\x00\x01")
        (src / "top.txt").write_text("top")
        dest = tmp_path / "copied"

        result = fs.copy_item(str(src), str(dest))

        assert result.success
        assert (dest / "a" / "empty").is_dir()
        assert (dest / "b" / "data.bin").read_bytes() == b"\x00\x01"
        assert (dest / "top.txt").read_text() == "top"

    def test_copy_directory_creates_structure_before_files(self, fs, tree, tmp_path, monkeypatch):
        src = tree / "project"
        (src / "a" / "deep" / "empty").mkdir(parents=True)
        (src / "a" / "file.txt").write_text("x")
        dest = tmp_path / "copied"
        seen_structure: list[bool] = []
        real_copyfile = shutil.copyfile

        def spy(s, d, *args, **kwargs):
            seen_structure.append((dest / "a" / "deep" / "empty").is_dir())
            return real_copyfile(s, d, *args, **kwargs)

        monkeypatch.setattr(shutil, "copyfile", spy)
        result = fs.copy_item(str(src), str(dest))

        assert result.success
        assert seen_structure == [True]

    def test_copy_directory_into_itself_fails(self, fs, tree):
        result = fs.copy_item(str(tree / "folder"), str(tree / "folder" / "inner"))
        assert not result.success
        assert result.error.startswith("Failed to copy item: ")
        assert not (tree / "folder" / "inner").exists()

    def test_missing_source(self, fs, tmp_path):
        result = fs.copy_item(str(tmp_path / "missing"), str(tmp_path / "dest"))
        assert not result.success
        assert result.error.startswith("Failed to copy item: ")


class TestShellIntegration:
    def test_open_file_success(self, fs, tree, monkeypatch):
        opened: list[str] = []
        monkeypatch.setattr(desktop, "open_path", opened.append)
        result = fs.open_file(str(tree / "file.txt"))
        assert result.success
        assert opened == [str(tree / "file.txt")]

    def test_open_file_failure_is_captured(self, fs, tree, monkeypatch):
        def fail(path):
            raise desktop.ShellError("xdg-open is not installed")

        monkeypatch.setattr(desktop, "open_path", fail)
        result = fs.open_file(str(tree / "file.txt"))
        assert not result.success
        assert result.error == "Failed to open file: xdg-open is not installed"

    def test_show_in_folder_failure_is_captured(self, fs, tmp_path):
        result = fs.show_in_folder(str(tmp_path / "missing"))
        assert not result.success
        assert result.error.startswith("Failed to show in folder: ")


class TestWellKnownDirectories:
    def test_home(self, fs, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert fs.get_home_directory() == str(tmp_path)

    def test_fallbacks_without_xdg_user_dir(self, fs, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setattr("burrow.utils.shutil.which", lambda name: None)
        assert fs.get_desktop_directory() == str(tmp_path / "Desktop")
        assert fs.get_documents_directory() == str(tmp_path / "Documents")
        assert fs.get_downloads_directory() == str(tmp_path / "Downloads")


@pytest.fixture
def collation():
    """Switch LC_COLLATE to a real language locale for one test."""
    saved = locale.setlocale(locale.LC_COLLATE)
    for name in ("en_US.UTF-8", "en_US.utf8", "en_GB.UTF-8", "de_DE.UTF-8", "fr_FR.UTF-8"):
        try:
            locale.setlocale(locale.LC_COLLATE, name)
            break
        except locale.Error:
            continue
    else:
        pytest.skip("no language locale installed")
    yield
    locale.setlocale(locale.LC_COLLATE, saved)


class TestCollation:
    def test_accented_names_follow_locale(self, fs, tmp_path, collation):
        for name in ("zebra.txt", "éclair.txt", "apple.txt"):
            (tmp_path / name).write_text("x")
        contents = fs.read_directory(str(tmp_path))
        assert [e.name for e in contents.items] == ["apple.txt", "éclair.txt", "zebra.txt"]

    def test_case_only_difference_is_deterministic(self, fs, tmp_path):
        (tmp_path / "file.txt").write_text("x")
        (tmp_path / "File.txt").write_text("x")
        contents = fs.read_directory(str(tmp_path))
        assert [e.name for e in contents.items] == ["File.txt", "file.txt"]

    def test_init_locale_adopts_user_collation(self, monkeypatch):
        calls = []
        monkeypatch.setattr("burrow.utils.locale.setlocale", lambda category, value: calls.append((category, value)))
        init_locale()
        assert calls == [(locale.LC_COLLATE, "")]

    def test_init_locale_tolerates_broken_environment(self, monkeypatch):
        def broken(category, value):
            raise locale.Error("unsupported locale setting")

        monkeypatch.setattr("burrow.utils.locale.setlocale", broken)
        init_locale()


class TestInvalidPaths:
    """Paths with an embedded NUL byte never escape as raw exceptions."""

    def test_read_directory(self, fs, tmp_path):
        with pytest.raises(FileSystemError, match="^Failed to read directory: .*null"):
            fs.read_directory(str(tmp_path) + "/a\x00b")

    def test_get_file_stats(self, fs, tmp_path):
        with pytest.raises(FileSystemError, match="^Failed to get file stats: "):
            fs.get_file_stats(str(tmp_path) + "/a\x00b")

    @pytest.mark.parametrize(
        "method, args, prefix",
        [
            ("create_folder", ("{tmp}", "a\x00b"), "Failed to create folder: "),
            ("delete_item", ("{tmp}/a\x00b",), "Failed to delete item: "),
            ("rename_item", ("{tmp}/a\x00b", "{tmp}/c"), "Failed to rename item: "),
            ("copy_item", ("{tmp}/a\x00b", "{tmp}/c"), "Failed to copy item: "),
        ],
    )
    def test_mutations_return_failed_result(self, fs, tmp_path, method, args, prefix):
        result = getattr(fs, method)(*(a.format(tmp=tmp_path) for a in args))
        assert result.success is False
        assert result.error.startswith(prefix)


class TestFolderNames:
    def test_absolute_name_stays_inside_parent(self, fs, tmp_path):
        parent = tmp_path / "parent"
        parent.mkdir()
        outside = tmp_path / "outside"

        result = fs.create_folder(str(parent), str(outside))

        assert not result.success
        assert result.error.startswith("Failed to create folder: Invalid name")
        assert not outside.exists()

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b", "../escape"])
    def test_multi_component_names_rejected(self, fs, tree, name):
        result = fs.create_folder(str(tree / "empty"), name)
        assert not result.success
        assert list((tree / "empty").iterdir()) == []
        assert not (tree / "escape").exists()

    def test_check_entry_name_accepts_plain_names(self):
        check_entry_name("report 2024.pdf")
        check_entry_name(".hidden")
