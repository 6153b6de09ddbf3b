"""Environment-driven settings."""

from __future__ import annotations

import os

DEFAULT_POWERSHELL = "powershell.exe"
# New-Partition can return while the disk still reports read-only; formatting
# straight away then fails.
DEFAULT_SETTLE_SECONDS = 5.0


def execution_enabled() -> bool:
    """Return ``True`` when mutating Disk Store commands may run."""

    return os.environ.get("DISK_RECONCILE_EXEC") == "1"


def powershell_executable() -> str:
    value = os.environ.get("DISK_RECONCILE_POWERSHELL")
    if value is None or not value.strip():
        return DEFAULT_POWERSHELL
    return value.strip()


def settle_seconds() -> float:
    """Return the pause applied between partition creation and formatting."""

    value = os.environ.get("DISK_RECONCILE_SETTLE_SECONDS")
    if value is None or not value.strip():
        return DEFAULT_SETTLE_SECONDS
    try:
        seconds = float(value)
    except ValueError:
        return DEFAULT_SETTLE_SECONDS
    return max(seconds, 0.0)
