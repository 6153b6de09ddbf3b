"""State model for disks, partitions and volumes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

RAW = "RAW"
GPT = "GPT"
MBR = "MBR"

# MSFT_Disk.PartitionStyle values as serialised by ConvertTo-Json.
_PARTITION_STYLE_CODES = {0: RAW, 1: MBR, 2: GPT}

_NATIVE_VOLUME_PATH = re.compile(r"^\\\\\?\\Volume\{([0-9A-Fa-f-]+)\}\\$")


def normalise_partition_style(value: object) -> str:
    """Return the canonical upper-case name for a partition style."""

    if isinstance(value, int):
        return _PARTITION_STYLE_CODES.get(value, str(value))
    text = str(value or "").strip().upper()
    return text or RAW


def is_native_volume_path(path: str) -> bool:
    """Return ``True`` for the implicit ``\\\\?\\Volume{...}\\`` access path."""

    return bool(_NATIVE_VOLUME_PATH.match(path))


def volume_guid_from_paths(paths: Tuple[str, ...]) -> Optional[str]:
    for path in paths:
        match = _NATIVE_VOLUME_PATH.match(path)
        if match:
            return match.group(1).lower()
    return None


def volume_device_id(volume_guid: str) -> str:
    """Return the ``Win32_Volume.DeviceID`` for *volume_guid*."""

    return "\\\\?\\Volume{" + volume_guid + "}\\"


def _path_key(path: str) -> str:
    return path.rstrip("\\").casefold()


def same_access_path(left: str, right: str) -> bool:
    """Compare access paths the way Windows does, ignoring a trailing backslash."""

    return _path_key(left) == _path_key(right)


@dataclass(frozen=True)
class DriveLetter:
    letter: str

    def access_path(self) -> str:
        return f"{self.letter}:\\"

    def __str__(self) -> str:
        return self.letter


@dataclass(frozen=True)
class MountPath:
    path: str

    def access_path(self) -> str:
        return self.path

    def __str__(self) -> str:
        return self.path


MountTarget = Union[DriveLetter, MountPath]


def parse_mount_target(value: str) -> MountTarget:
    """Decide once whether *value* is a drive letter or a mount path.

    A single character is a drive letter; anything longer is a mount path.
    """

    if value is None or value == "":
        raise ValueError("mount target must not be empty")
    if len(value) == 1:
        if not value.isalpha():
            raise ValueError(f"invalid drive letter: {value!r}")
        return DriveLetter(value.upper())
    return MountPath(value)


@dataclass(frozen=True)
class DiskState:
    """Observable attributes of a disk."""

    number: int
    is_offline: bool = False
    is_read_only: bool = False
    partition_style: str = RAW


@dataclass(frozen=True)
class PartitionState:
    """A partition and the paths through which it is reachable."""

    disk_number: int
    partition_number: int
    size: int = 0
    access_paths: Tuple[str, ...] = ()
    drive_letter: Optional[str] = None
    volume_guid: Optional[str] = None

    def matches(self, target: MountTarget) -> bool:
        """Return ``True`` when the partition is exposed at *target*.

        Drive letter and mount path are equivalent lookup keys: ``D`` matches
        either the assigned letter or an ``D:\\`` access path.
        """

        if isinstance(target, DriveLetter):
            if self.drive_letter and self.drive_letter.upper() == target.letter:
                return True
        wanted = target.access_path()
        return any(same_access_path(path, wanted) for path in self.access_paths)

    def removable_access_paths(self) -> Tuple[str, ...]:
        """Return every access path except the native volume path."""

        return tuple(path for path in self.access_paths if not is_native_volume_path(path))


@dataclass(frozen=True)
class VolumeState:
    """A formatted volume living on a partition."""

    label: str = ""
    file_system: str = ""
    block_size: Optional[int] = None


@dataclass(frozen=True)
class DesiredConfig:
    """Caller-supplied target state."""

    disk_number: int
    mount_target: MountTarget
    size: Optional[int] = None
    label: Optional[str] = None
    allocation_unit_size: Optional[int] = None


@dataclass(frozen=True)
class Snapshot:
    """Best-effort view of a disk/partition/volume triple."""

    disk: Optional[DiskState] = None
    partition: Optional[PartitionState] = None
    volume: Optional[VolumeState] = None
