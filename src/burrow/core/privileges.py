"""Running bridge calls as root through pkexec.

The unprivileged side sends ``{"operation": ..., "args": [...]}`` on the
stdin of ``pkexec burrow call-as-root`` and reads back one envelope:
``{"result": ...}`` or ``{"error": "...", "kind": "read" | "bridge"}``.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from typing import Any

log = logging.getLogger(__name__)

# Timeout for the pkexec subprocess (seconds).
_PKEXEC_TIMEOUT = 300

# pkexec exit codes that mean the helper never ran.
_PKEXEC_EXITS = {
    126: "Authentication dismissed by user",
    127: "Authentication denied",
}

ERROR_KINDS = ("read", "bridge")


class PrivilegeError(Exception):
    """Raised when privilege escalation fails."""


def is_root() -> bool:
    return os.geteuid() == 0


def find_burrow_executable() -> str | None:
    """Find the burrow CLI executable on PATH."""
    return shutil.which("burrow")


def pkexec_available() -> bool:
    return shutil.which("pkexec") is not None


def encode_request(operation: str, args: list[str]) -> str:
    return json.dumps({"operation": operation, "args": args})


def decode_request(raw: str) -> tuple[str, list[Any]]:
    """Parse a request read by ``call-as-root``.

    Argument types are left to the bridge whitelist check.

    Raises:
        PrivilegeError: If *raw* is not a request object.
    """
    try:
        payload = json.loads(raw)
        operation = payload["operation"]
        args = payload.get("args", [])
    except (json.JSONDecodeError, TypeError, KeyError, AttributeError) as exc:
        raise PrivilegeError(f"Bad input: {exc}")
    if not isinstance(operation, str) or not isinstance(args, list):
        raise PrivilegeError("Bad input: expected a string operation and a list of arguments")
    return operation, args


def decode_envelope(raw: str) -> dict[str, Any]:
    """Parse and validate the envelope printed by ``call-as-root``.

    Raises:
        PrivilegeError: If *raw* is not a well-formed envelope.
    """
    try:
        envelope = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        raise PrivilegeError(f"Invalid response from privileged process: {exc}")

    if not isinstance(envelope, dict):
        raise PrivilegeError("Invalid response from privileged process: expected an object")
    if "result" in envelope:
        return envelope
    if isinstance(envelope.get("error"), str) and envelope.get("kind") in ERROR_KINDS:
        return envelope
    raise PrivilegeError("Invalid response from privileged process: missing result or error")


def run_privileged_call(operation: str, args: list[str]) -> dict[str, Any]:
    """Run one bridge operation as root and return its envelope.

    Raises:
        PrivilegeError: When the helper cannot be found, authentication is
            cancelled or denied, the call times out, or the reply is malformed.
    """
    burrow_exe = find_burrow_executable()
    if burrow_exe is None:
        raise PrivilegeError("Could not find the 'burrow' executable on PATH")

    try:
        proc = subprocess.run(
            ["pkexec", burrow_exe, "call-as-root"],
            input=encode_request(operation, args),
            capture_output=True,
            text=True,
            timeout=_PKEXEC_TIMEOUT,
        )
    except subprocess.TimeoutExpired:
        raise PrivilegeError(f"Privileged call timed out after {_PKEXEC_TIMEOUT // 60} minutes")

    if proc.returncode in _PKEXEC_EXITS:
        raise PrivilegeError(_PKEXEC_EXITS[proc.returncode])
    # call-as-root exits 1 after printing an error envelope for unreadable input
    if proc.returncode != 0 and not proc.stdout.strip():
        raise PrivilegeError(f"Privileged call failed (exit {proc.returncode}): {proc.stderr.strip()}")

    envelope = decode_envelope(proc.stdout)
    log.debug("Privileged %s completed (%s)", operation, "error" if "error" in envelope else "ok")
    return envelope
