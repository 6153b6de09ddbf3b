"""Decide whether a snapshot already satisfies the desired configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .logging_utils import log_event
from .models import GPT, DesiredConfig, Snapshot

DISK_NOT_FOUND = "disk_not_found"
DISK_OFFLINE = "disk_offline"
DISK_READ_ONLY = "disk_read_only"
PARTITION_STYLE = "partition_style"
PARTITION_NOT_FOUND = "partition_not_found"
SIZE_MISMATCH = "size_mismatch"
LABEL_MISMATCH = "label_mismatch"


@dataclass(frozen=True)
class Comparison:
    """Outcome of :func:`compare_state`."""

    converged: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.converged


def _mismatch(desired: DesiredConfig, reason: str, **fields: object) -> Comparison:
    log_event(
        "disk_reconcile.compare.not_converged",
        disk_number=desired.disk_number,
        mount_target=str(desired.mount_target),
        reason=reason,
        **fields,
    )
    return Comparison(False, reason)


def compare_state(desired: DesiredConfig, snapshot: Snapshot) -> Comparison:
    """Check *snapshot* against *desired*, stopping at the first mismatch.

    A ``RAW`` disk is reported as not converged even though the converger
    can initialise it: converged means nothing is left to do. An allocation
    unit size mismatch is only reported, since fixing it would mean
    reformatting.
    """

    disk = snapshot.disk
    if disk is None:
        return _mismatch(desired, DISK_NOT_FOUND)
    if disk.is_offline:
        return _mismatch(desired, DISK_OFFLINE)
    if disk.is_read_only:
        return _mismatch(desired, DISK_READ_ONLY)
    if disk.partition_style != GPT:
        return _mismatch(desired, PARTITION_STYLE, partition_style=disk.partition_style)

    partition = snapshot.partition
    if partition is None:
        return _mismatch(desired, PARTITION_NOT_FOUND)
    if desired.size is not None and partition.size != desired.size:
        return _mismatch(desired, SIZE_MISMATCH, expected=desired.size, actual=partition.size)

    volume = snapshot.volume
    if (
        desired.allocation_unit_size
        and volume is not None
        and volume.block_size
        and volume.block_size != desired.allocation_unit_size
    ):
        log_event(
            "disk_reconcile.compare.allocation_unit_size_mismatch",
            disk_number=desired.disk_number,
            expected=desired.allocation_unit_size,
            actual=volume.block_size,
        )

    if desired.label:
        actual_label = volume.label if volume is not None else None
        if actual_label != desired.label:
            return _mismatch(desired, LABEL_MISMATCH, expected=desired.label, actual=actual_label)

    log_event(
        "disk_reconcile.compare.converged",
        disk_number=desired.disk_number,
        mount_target=str(desired.mount_target),
    )
    return Comparison(True)
