"""Exceptions raised by disk-reconcile."""

from __future__ import annotations

from typing import Optional, Sequence


class DiskStoreError(RuntimeError):
    """A Disk Store operation failed."""

    def __init__(
        self,
        message: str,
        *,
        command: Optional[Sequence[str] | str] = None,
        returncode: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.command = command
        self.returncode = returncode


class ConvergeError(RuntimeError):
    """Fatal failure while driving a disk towards its desired state."""

    def __init__(self, step: str, disk_number: int, message: str) -> None:
        super().__init__(f"{step} failed on disk {disk_number}: {message}")
        self.step = step
        self.disk_number = disk_number


class DiskNotFoundError(ConvergeError):
    def __init__(self, disk_number: int) -> None:
        super().__init__("get_disk", disk_number, "disk not found")


class UnsupportedPartitionStyleError(ConvergeError):
    """The disk is initialised with a style other than GPT or RAW."""

    def __init__(self, disk_number: int, style: str) -> None:
        super().__init__(
            "check_partition_style",
            disk_number,
            f"disk is already initialised with partition style {style!r}",
        )
        self.style = style
