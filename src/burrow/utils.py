"""Shared utility functions."""

from __future__ import annotations

import locale
import logging
import os
import shutil
import subprocess
from datetime import datetime
from pathlib import Path

log = logging.getLogger(__name__)

# Timeout for xdg-user-dir lookups (seconds).
_USER_DIR_TIMEOUT = 5

# XDG user-dirs key -> fallback directory name under $HOME.
USER_DIRS: dict[str, tuple[str, str]] = {
    "desktop": ("DESKTOP", "Desktop"),
    "documents": ("DOCUMENTS", "Documents"),
    "downloads": ("DOWNLOAD", "Downloads"),
}


def init_locale() -> None:
    """Adopt the user's collation rules so name sorting follows their locale."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        log.warning("Could not set the collation locale: %s", e)


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def home_dir() -> Path:
    """Return the current user's home directory."""
    return Path.home()


def user_dir(kind: str) -> Path:
    """Resolve a well-known user directory ('desktop', 'documents', 'downloads').

    Asks ``xdg-user-dir`` when it is installed and falls back to the
    conventional English name under the home directory.
    """
    xdg_key, fallback = USER_DIRS[kind]
    exe = shutil.which("xdg-user-dir")
    if exe is not None:
        try:
            proc = subprocess.run(
                [exe, xdg_key],
                capture_output=True,
                text=True,
                timeout=_USER_DIR_TIMEOUT,
            )
            resolved = proc.stdout.strip()
            if proc.returncode == 0 and resolved:
                return Path(resolved)
        except (subprocess.TimeoutExpired, OSError) as e:
            log.debug("xdg-user-dir %s failed: %s", xdg_key, e)
    return home_dir() / fallback


def bytes_to_human(size_bytes: int) -> str:
    """Convert byte count to a human-readable string."""
    if size_bytes < 0:
        return f"-{bytes_to_human(-size_bytes)}"
    if size_bytes == 0:
        return "0 B"

    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size_bytes)
    for unit in units[:-1]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} {units[-1]}"


def format_timestamp(dt: datetime) -> str:
    """Format a timestamp in local time for listings."""
    return dt.astimezone().strftime("%Y-%m-%d %H:%M")
