"""Get/Test/Set operations exposed to the host configuration engine."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .comparator import compare_state
from .converger import SettleStep, converge_state
from .logging_utils import log_event
from .models import DesiredConfig, DriveLetter, MountTarget, parse_mount_target
from .reader import read_state
from .store import DiskStore


def _target(mount_target: str | MountTarget) -> MountTarget:
    if isinstance(mount_target, str):
        return parse_mount_target(mount_target)
    return mount_target


def desired_config(
    disk_number: int,
    mount_target: str | MountTarget,
    size: Optional[int] = None,
    label: Optional[str] = None,
    allocation_unit_size: Optional[int] = None,
) -> DesiredConfig:
    return DesiredConfig(
        disk_number=int(disk_number),
        mount_target=_target(mount_target),
        size=size,
        label=label,
        allocation_unit_size=allocation_unit_size,
    )


def get_resource(
    store: DiskStore, disk_number: int, mount_target: str | MountTarget
) -> Dict[str, Any]:
    """Return the current state as a flat mapping.

    Missing disk, partition, volume or block size show up as ``None`` values.
    """

    target = _target(mount_target)
    snapshot = read_state(store, int(disk_number), target)

    assigned: Optional[str] = None
    size = label = block_size = None
    if snapshot.partition is not None:
        partition = snapshot.partition
        size = partition.size
        if isinstance(target, DriveLetter):
            assigned = partition.drive_letter or target.letter
        else:
            assigned = str(target)
    if snapshot.volume is not None:
        label = snapshot.volume.label
        block_size = snapshot.volume.block_size

    return {
        "disk_number": int(disk_number),
        "mount_target": assigned,
        "size": size,
        "label": label,
        "allocation_unit_size": block_size,
    }


def is_converged(
    store: DiskStore,
    disk_number: int,
    mount_target: str | MountTarget,
    size: Optional[int] = None,
    label: Optional[str] = None,
    allocation_unit_size: Optional[int] = None,
) -> bool:
    """Return ``True`` when no further action is needed."""

    desired = desired_config(disk_number, mount_target, size, label, allocation_unit_size)
    snapshot = read_state(store, desired.disk_number, desired.mount_target)
    return compare_state(desired, snapshot).converged


def converge(
    store: DiskStore,
    disk_number: int,
    mount_target: str | MountTarget,
    size: Optional[int] = None,
    label: Optional[str] = None,
    allocation_unit_size: Optional[int] = None,
    *,
    settle: Optional[SettleStep] = None,
) -> List[str]:
    """Drive the disk to the desired state; raises ``ConvergeError`` on failure."""

    desired = desired_config(disk_number, mount_target, size, label, allocation_unit_size)
    actions = converge_state(store, desired, settle=settle)
    log_event("disk_reconcile.resource.converged", disk_number=desired.disk_number, actions=actions)
    return actions
