"""Desktop shell integration: open with the default app, reveal in file manager."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path

log = logging.getLogger(__name__)

# Timeout for the FileManager1 D-Bus call (seconds).
_REVEAL_TIMEOUT = 10


class ShellError(Exception):
    """Raised when the desktop shell cannot handle a request."""


def _launch(cmd: list[str]) -> None:
    """Start a detached helper process."""
    subprocess.Popen(
        cmd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


def open_path(path: str) -> None:
    """Open *path* with the user's default application.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ShellError: If no opener is available on this system.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"No such file or directory: '{path}'")

    if sys.platform == "darwin":
        _launch(["open", path])
    elif os.name == "nt":
        os.startfile(path)  # type: ignore[attr-defined]
    else:
        opener = shutil.which("xdg-open")
        if opener is None:
            raise ShellError("xdg-open is not installed")
        _launch([opener, path])
    log.debug("Opened %s", path)


def reveal_path(path: str) -> None:
    """Show *path* in the system file manager, selecting it.

    On Linux this uses the ``org.freedesktop.FileManager1.ShowItems``
    D-Bus method and falls back to opening the containing folder.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"No such file or directory: '{path}'")

    if sys.platform == "darwin":
        _launch(["open", "-R", path])
        return
    if os.name == "nt":
        _launch(["explorer", f"/select,{path}"])
        return

    if _show_items(path):
        return
    target = Path(path)
    if not target.is_dir():
        target = target.parent
    open_path(str(target))


def _show_items(path: str) -> bool:
    """Ask the FileManager1 service to highlight *path*; return True on success."""
    gdbus = shutil.which("gdbus")
    if gdbus is None:
        return False
    uri = Path(path).absolute().as_uri()
    try:
        proc = subprocess.run(
            [
                gdbus, "call", "--session",
                "--dest", "org.freedesktop.FileManager1",
                "--object-path", "/org/freedesktop/FileManager1",
                "--method", "org.freedesktop.FileManager1.ShowItems",
                f"['{uri}']", "",
            ],
            capture_output=True,
            text=True,
            timeout=_REVEAL_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        log.debug("FileManager1.ShowItems failed: %s", e)
        return False
    if proc.returncode != 0:
        log.debug("FileManager1.ShowItems exited %d: %s", proc.returncode, proc.stderr.strip())
        return False
    return True
