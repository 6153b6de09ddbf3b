"""Disk Store interface consumed by the reader and the converger."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .block_size import BlockSizeProvider
from .errors import DiskStoreError
from .models import DiskState, MountTarget, PartitionState, VolumeState

__all__ = ["DiskStore", "DiskStoreError"]


class DiskStore:
    """OS-level disk, partition and volume management.

    Mutating methods raise :class:`DiskStoreError` when the underlying
    operation fails. Lookups return ``None`` for objects that do not exist.
    """

    def get_disk(self, disk_number: int) -> Optional[DiskState]:
        raise NotImplementedError

    def set_online(self, disk_number: int) -> None:
        raise NotImplementedError

    def set_read_write(self, disk_number: int) -> None:
        raise NotImplementedError

    def initialize(self, disk_number: int, partition_style: str) -> None:
        raise NotImplementedError

    def list_partitions(self, disk_number: int) -> List[PartitionState]:
        raise NotImplementedError

    def create_partition(
        self,
        disk_number: int,
        target: MountTarget,
        size: Optional[int] = None,
    ) -> PartitionState:
        """Create a partition addressed at *target*.

        ``size`` of ``None`` requests all remaining space on the disk.
        """

        raise NotImplementedError

    def format_volume(
        self,
        partition: PartitionState,
        *,
        label: Optional[str] = None,
        allocation_unit_size: Optional[int] = None,
    ) -> None:
        """Format *partition* as NTFS without confirmation."""

        raise NotImplementedError

    def get_volume(self, partition: PartitionState) -> Optional[VolumeState]:
        raise NotImplementedError

    def block_size_providers(self) -> Sequence[BlockSizeProvider]:
        """Return block size query interfaces in priority order."""

        return ()

    def set_drive_letter(self, partition: PartitionState, letter: str) -> None:
        raise NotImplementedError

    def add_access_path(self, partition: PartitionState, path: str) -> None:
        raise NotImplementedError

    def remove_access_path(self, partition: PartitionState, path: str) -> None:
        raise NotImplementedError
