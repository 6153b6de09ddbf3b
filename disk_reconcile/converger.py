"""Drive a disk to its desired state."""

from __future__ import annotations

import time
from typing import Any, Callable, List, Optional, Tuple

from . import config
from .errors import (
    ConvergeError,
    DiskNotFoundError,
    DiskStoreError,
    UnsupportedPartitionStyleError,
)
from .logging_utils import log_event
from .models import (
    GPT,
    RAW,
    DesiredConfig,
    DiskState,
    DriveLetter,
    MountPath,
    PartitionState,
    same_access_path,
)
from .reader import find_partition
from .store import DiskStore

SettleStep = Callable[[], None]


def wait_for_partition_settle(
    seconds: Optional[float] = None, *, sleep: Optional[Callable[[float], None]] = None
) -> None:
    """Pause after partition creation before formatting.

    The disk can still report read-only for a moment after ``New-Partition``
    returns. The pause is unconditional and is not retried.
    """

    duration = config.settle_seconds() if seconds is None else seconds
    log_event("disk_reconcile.converge.settle", seconds=duration)
    if duration > 0:
        (sleep or time.sleep)(duration)


def _step(desired: DesiredConfig, name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run one Disk Store operation, turning failures into :class:`ConvergeError`."""

    log_event("disk_reconcile.converge.step.start", step=name, disk_number=desired.disk_number)
    try:
        result = func(*args, **kwargs)
    except DiskStoreError as exc:
        log_event(
            "disk_reconcile.converge.step.failed",
            step=name,
            disk_number=desired.disk_number,
            error=str(exc),
        )
        raise ConvergeError(name, desired.disk_number, str(exc)) from exc
    log_event("disk_reconcile.converge.step.finished", step=name, disk_number=desired.disk_number)
    return result


def converge_state(
    store: DiskStore,
    desired: DesiredConfig,
    *,
    settle: Optional[SettleStep] = None,
) -> List[str]:
    """Bring the disk described by *desired* into line.

    A partition already at the mount target but without a volume is formatted
    in place rather than created again.

    Returns the names of the actions performed, in order. Any Disk Store
    failure aborts the pass with a :class:`ConvergeError`; whatever was
    already done stays done and is picked up by the next pass.
    """

    settle = settle or wait_for_partition_settle
    actions: List[str] = []
    number = desired.disk_number
    log_event(
        "disk_reconcile.converge.start",
        disk_number=number,
        mount_target=str(desired.mount_target),
        size=desired.size,
        label=desired.label,
        allocation_unit_size=desired.allocation_unit_size,
    )

    disk = _step(desired, "get_disk", store.get_disk, number)
    if disk is None:
        log_event("disk_reconcile.converge.disk_missing", disk_number=number)
        raise DiskNotFoundError(number)

    _ensure_writable(store, desired, disk, actions)
    _ensure_gpt(store, desired, disk, actions)

    partitions = _step(desired, "list_partitions", store.list_partitions, number)
    existing = _find_existing_volume(store, desired, partitions)
    if existing is None:
        unformatted = find_partition(partitions, desired.mount_target)
        _provision(store, desired, unformatted, settle, actions)
    else:
        _readdress(store, desired, partitions, existing, actions)

    log_event("disk_reconcile.converge.finished", disk_number=number, actions=actions)
    return actions


def _ensure_writable(
    store: DiskStore, desired: DesiredConfig, disk: DiskState, actions: List[str]
) -> None:
    # Online before clearing read-only.
    if disk.is_offline:
        _step(desired, "set_online", store.set_online, desired.disk_number)
        actions.append("set_online")
    if disk.is_read_only:
        _step(desired, "clear_read_only", store.set_read_write, desired.disk_number)
        actions.append("clear_read_only")


def _ensure_gpt(
    store: DiskStore, desired: DesiredConfig, disk: DiskState, actions: List[str]
) -> None:
    style = disk.partition_style
    if style == GPT:
        return
    if style != RAW:
        log_event(
            "disk_reconcile.converge.unsupported_partition_style",
            disk_number=desired.disk_number,
            partition_style=style,
        )
        raise UnsupportedPartitionStyleError(desired.disk_number, style)
    _step(desired, "initialize_gpt", store.initialize, desired.disk_number, GPT)
    actions.append("initialize_gpt")


def _find_existing_volume(
    store: DiskStore, desired: DesiredConfig, partitions: List[PartitionState]
) -> Optional[PartitionState]:
    """Return the first partition on the disk that carries a formatted volume."""

    for partition in partitions:
        volume = _step(desired, "get_volume", store.get_volume, partition)
        if volume is not None:
            return partition
    return None


def _provision(
    store: DiskStore,
    desired: DesiredConfig,
    partition: Optional[PartitionState],
    settle: SettleStep,
    actions: List[str],
) -> None:
    if partition is None:
        partition = _step(
            desired,
            "create_partition",
            store.create_partition,
            desired.disk_number,
            desired.mount_target,
            desired.size,
        )
        actions.append("create_partition")
    else:
        log_event(
            "disk_reconcile.converge.reuse_partition",
            disk_number=desired.disk_number,
            partition_number=partition.partition_number,
        )

    settle()
    actions.append("settle")

    _step(
        desired,
        "format_volume",
        store.format_volume,
        partition,
        label=desired.label or None,
        allocation_unit_size=desired.allocation_unit_size or None,
    )
    actions.append("format_volume")


def _readdress(
    store: DiskStore,
    desired: DesiredConfig,
    partitions: List[PartitionState],
    existing: PartitionState,
    actions: List[str],
) -> None:
    target = desired.mount_target
    bound = find_partition(partitions, target)

    if isinstance(target, DriveLetter):
        if bound is not None:
            log_event(
                "disk_reconcile.converge.already_addressed",
                disk_number=desired.disk_number,
                mount_target=str(target),
            )
            return
        _step(desired, "set_drive_letter", store.set_drive_letter, existing, target.letter)
        actions.append("set_drive_letter")
        return

    partition = bound if bound is not None else existing
    for path in _paths_to_prune(partition, target):
        _step(desired, "remove_access_path", store.remove_access_path, partition, path)
        actions.append("remove_access_path")
    if bound is None:
        _step(desired, "add_access_path", store.add_access_path, partition, target.path)
        actions.append("add_access_path")


def _paths_to_prune(partition: PartitionState, target: MountPath) -> Tuple[str, ...]:
    """Return access paths to drop, keeping the native volume path and *target*."""

    return tuple(
        path
        for path in partition.removable_access_paths()
        if not same_access_path(path, target.path)
    )
