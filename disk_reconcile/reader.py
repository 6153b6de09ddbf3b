"""Read the current state of a disk without changing it."""

from __future__ import annotations

from typing import Iterable, Optional

from .block_size import query_block_size
from .errors import DiskStoreError
from .logging_utils import log_event
from .models import MountTarget, PartitionState, Snapshot, VolumeState
from .store import DiskStore


def find_partition(
    partitions: Iterable[PartitionState], target: MountTarget
) -> Optional[PartitionState]:
    """Return the first partition exposed at *target*."""

    for partition in partitions:
        if partition.matches(target):
            return partition
    return None


def read_state(store: DiskStore, disk_number: int, target: MountTarget) -> Snapshot:
    """Return a best-effort :class:`Snapshot` for *disk_number*.

    Every lookup failure is reported as absent state; this never raises a
    :class:`DiskStoreError`.
    """

    try:
        disk = store.get_disk(disk_number)
    except DiskStoreError as exc:
        log_event("disk_reconcile.reader.disk_lookup_failed", disk_number=disk_number, error=str(exc))
        disk = None
    if disk is None:
        log_event("disk_reconcile.reader.disk_missing", disk_number=disk_number)
        return Snapshot()

    try:
        partitions = store.list_partitions(disk_number)
    except DiskStoreError as exc:
        log_event(
            "disk_reconcile.reader.partition_lookup_failed",
            disk_number=disk_number,
            error=str(exc),
        )
        partitions = []

    partition = find_partition(partitions, target)
    if partition is None:
        log_event(
            "disk_reconcile.reader.partition_missing",
            disk_number=disk_number,
            mount_target=str(target),
        )
        return Snapshot(disk=disk)

    volume = _read_volume(store, partition)
    return Snapshot(disk=disk, partition=partition, volume=volume)


def _read_volume(store: DiskStore, partition: PartitionState) -> Optional[VolumeState]:
    try:
        volume = store.get_volume(partition)
    except DiskStoreError as exc:
        log_event(
            "disk_reconcile.reader.volume_lookup_failed",
            disk_number=partition.disk_number,
            partition_number=partition.partition_number,
            error=str(exc),
        )
        return None
    if volume is None:
        return None

    block_size = query_block_size(store.block_size_providers(), partition.volume_guid)
    if block_size is None:
        return volume
    return VolumeState(
        label=volume.label,
        file_system=volume.file_system,
        block_size=block_size,
    )
