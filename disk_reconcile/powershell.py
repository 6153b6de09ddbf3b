"""Disk Store backed by the Windows Storage PowerShell cmdlets."""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from . import config
from .block_size import BlockSizeProvider
from .errors import DiskStoreError
from .logging_utils import log_event
from .models import (
    DiskState,
    DriveLetter,
    MountTarget,
    PartitionState,
    VolumeState,
    normalise_partition_style,
    volume_device_id,
    volume_guid_from_paths,
)
from .store import DiskStore

__all__ = [
    "CommandOutput",
    "CimBlockSizeProvider",
    "PowerShellDiskStore",
    "WmiBlockSizeProvider",
    "parse_json_records",
    "quote",
]

_PARTITION_FIELDS = "DiskNumber, PartitionNumber, Size, DriveLetter, AccessPaths"


@dataclass
class CommandOutput:
    """Minimal command result container for dependency injection."""

    stdout: str
    returncode: int = 0
    stderr: str = ""


Runner = Callable[[Sequence[str]], CommandOutput]


def _default_run(cmd: Sequence[str]) -> CommandOutput:
    try:
        completed = subprocess.run(
            list(cmd),
            capture_output=True,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as exc:
        return CommandOutput(stdout="", returncode=127, stderr=str(exc))
    return CommandOutput(
        stdout=completed.stdout or "",
        returncode=completed.returncode,
        stderr=completed.stderr or "",
    )


def quote(value: str) -> str:
    """Return *value* as a single-quoted PowerShell string literal."""

    return "'" + value.replace("'", "''") + "'"


def parse_json_records(text: str) -> List[Dict[str, Any]]:
    """Parse ``ConvertTo-Json`` output into a list of objects.

    PowerShell emits a bare object rather than a one-element array when the
    pipeline yields a single item, and nothing at all when it yields none.
    """

    text = (text or "").strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DiskStoreError(f"unparseable PowerShell output: {exc}") from exc
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    return []


def _drive_letter(value: Any) -> Optional[str]:
    if isinstance(value, int):
        value = chr(value) if value > 0 else ""
    text = str(value or "").strip().strip("\x00")
    if len(text) == 1 and text.isalpha():
        return text.upper()
    return None


def _access_paths(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(path) for path in value if path)


def _partition_from_record(record: Dict[str, Any]) -> PartitionState:
    paths = _access_paths(record.get("AccessPaths"))
    return PartitionState(
        disk_number=int(record.get("DiskNumber") or 0),
        partition_number=int(record.get("PartitionNumber") or 0),
        size=int(record.get("Size") or 0),
        access_paths=paths,
        drive_letter=_drive_letter(record.get("DriveLetter")),
        volume_guid=volume_guid_from_paths(paths),
    )


def _parse_int(text: str) -> Optional[int]:
    for line in (text or "").splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            return int(line)
        except ValueError:
            return None
    return None


class _WqlBlockSizeProvider(BlockSizeProvider):
    """Query ``Win32_Volume.BlockSize`` keyed by the volume's DeviceID."""

    cmdlet = ""

    def __init__(self, store: "PowerShellDiskStore") -> None:
        self.store = store

    def script(self, volume_guid: str) -> str:
        device_id = volume_device_id(volume_guid).replace("\\", "\\\\")
        wql = f"SELECT BlockSize FROM Win32_Volume WHERE DeviceID = '{device_id}'"
        return (
            f"{self.cmdlet} -Query {quote(wql)} -ErrorAction Stop"
            " | Select-Object -ExpandProperty BlockSize"
        )

    def query(self, volume_guid: str) -> Optional[int]:
        return _parse_int(self.store.query(self.script(volume_guid)))


class CimBlockSizeProvider(_WqlBlockSizeProvider):
    name = "cim"
    cmdlet = "Get-CimInstance"


class WmiBlockSizeProvider(_WqlBlockSizeProvider):
    """Legacy WMI interface, used when the CIM query yields nothing."""

    name = "wmi"
    cmdlet = "Get-WmiObject"


class PowerShellDiskStore(DiskStore):
    """Run Storage module cmdlets through ``powershell.exe``.

    Queries always run. Mutating commands only run when ``execute`` is true;
    otherwise they are logged as skipped. Every mutating script is recorded
    in :attr:`commands` either way.
    """

    def __init__(
        self,
        *,
        run: Runner | None = None,
        execute: Optional[bool] = None,
        executable: Optional[str] = None,
    ) -> None:
        self.run = run or _default_run
        self.execute = config.execution_enabled() if execute is None else execute
        self.executable = executable or config.powershell_executable()
        self.commands: List[str] = []
        self._providers = (CimBlockSizeProvider(self), WmiBlockSizeProvider(self))

    def _command(self, script: str) -> List[str]:
        return [self.executable, "-NoProfile", "-NonInteractive", "-Command", script]

    def query(self, script: str) -> str:
        """Run a read-only *script* and return its stdout."""

        result = self.run(self._command(script))
        log_event(
            "disk_reconcile.powershell.query",
            script=script,
            returncode=result.returncode,
        )
        if result.returncode != 0:
            raise DiskStoreError(
                f"PowerShell exited with status {result.returncode}: "
                f"{(result.stderr or '').strip()}",
                command=script,
                returncode=result.returncode,
            )
        return result.stdout

    def invoke(self, script: str) -> Optional[str]:
        """Run a mutating *script*; return stdout, or ``None`` when skipped."""

        self.commands.append(script)
        log_event("disk_reconcile.powershell.command.start", script=script, execute=self.execute)
        if not self.execute:
            log_event(
                "disk_reconcile.powershell.command.skip",
                script=script,
                reason="execution disabled",
            )
            return None
        result = self.run(self._command("$ErrorActionPreference = 'Stop'; " + script))
        status = "success" if result.returncode == 0 else "error"
        log_event(
            "disk_reconcile.powershell.command.finished",
            script=script,
            status=status,
            returncode=result.returncode,
        )
        if result.returncode != 0:
            raise DiskStoreError(
                f"PowerShell exited with status {result.returncode}: "
                f"{(result.stderr or '').strip()}",
                command=script,
                returncode=result.returncode,
            )
        return result.stdout

    def get_disk(self, disk_number: int) -> Optional[DiskState]:
        records = parse_json_records(
            self.query(
                f"Get-Disk -Number {int(disk_number)} -ErrorAction SilentlyContinue"
                " | Select-Object Number, IsOffline, IsReadOnly, PartitionStyle"
                " | ConvertTo-Json -Compress"
            )
        )
        if not records:
            return None
        record = records[0]
        return DiskState(
            number=int(record.get("Number", disk_number)),
            is_offline=bool(record.get("IsOffline")),
            is_read_only=bool(record.get("IsReadOnly")),
            partition_style=normalise_partition_style(record.get("PartitionStyle")),
        )

    def set_online(self, disk_number: int) -> None:
        self.invoke(f"Set-Disk -Number {int(disk_number)} -IsOffline $false")

    def set_read_write(self, disk_number: int) -> None:
        self.invoke(f"Set-Disk -Number {int(disk_number)} -IsReadOnly $false")

    def initialize(self, disk_number: int, partition_style: str) -> None:
        self.invoke(
            f"Initialize-Disk -Number {int(disk_number)} -PartitionStyle {partition_style}"
        )

    def list_partitions(self, disk_number: int) -> List[PartitionState]:
        records = parse_json_records(
            self.query(
                f"Get-Partition -DiskNumber {int(disk_number)} -ErrorAction SilentlyContinue"
                f" | Select-Object {_PARTITION_FIELDS} | ConvertTo-Json -Compress"
            )
        )
        return [_partition_from_record(record) for record in records]

    def create_partition(
        self,
        disk_number: int,
        target: MountTarget,
        size: Optional[int] = None,
    ) -> PartitionState:
        number = int(disk_number)
        new_partition = [f"New-Partition -DiskNumber {number}"]
        if isinstance(target, DriveLetter):
            new_partition.append(f"-DriveLetter {target.letter}")
        new_partition.append(f"-Size {int(size)}" if size is not None else "-UseMaximumSize")
        statements = ["$partition = " + " ".join(new_partition)]
        if not isinstance(target, DriveLetter):
            statements.append(
                f"$partition | Add-PartitionAccessPath -AccessPath {quote(target.access_path())}"
            )
        statements.append(
            f"Get-Partition -DiskNumber {number} -PartitionNumber $partition.PartitionNumber"
            f" | Select-Object {_PARTITION_FIELDS} | ConvertTo-Json -Compress"
        )

        output = self.invoke("; ".join(statements))
        if output is None:
            # Placeholder so a dry run can carry on to the format step.
            return PartitionState(
                disk_number=number,
                partition_number=0,
                size=size or 0,
                access_paths=(target.access_path(),),
                drive_letter=target.letter if isinstance(target, DriveLetter) else None,
            )
        records = parse_json_records(output)
        if not records:
            raise DiskStoreError(
                f"New-Partition on disk {number} did not report the new partition"
            )
        return _partition_from_record(records[0])

    def format_volume(
        self,
        partition: PartitionState,
        *,
        label: Optional[str] = None,
        allocation_unit_size: Optional[int] = None,
    ) -> None:
        script = (
            f"Get-Partition -DiskNumber {partition.disk_number}"
            f" -PartitionNumber {partition.partition_number}"
            " | Format-Volume -FileSystem NTFS -Confirm:$false"
        )
        if label:
            script += f" -NewFileSystemLabel {quote(label)}"
        if allocation_unit_size:
            script += f" -AllocationUnitSize {int(allocation_unit_size)}"
        self.invoke(script)

    def get_volume(self, partition: PartitionState) -> Optional[VolumeState]:
        records = parse_json_records(
            self.query(
                f"Get-Partition -DiskNumber {partition.disk_number}"
                f" -PartitionNumber {partition.partition_number} -ErrorAction SilentlyContinue"
                " | Get-Volume -ErrorAction SilentlyContinue"
                " | Select-Object FileSystemLabel, FileSystem | ConvertTo-Json -Compress"
            )
        )
        if not records:
            return None
        record = records[0]
        file_system = str(record.get("FileSystem") or "")
        if not file_system:
            return None
        return VolumeState(
            label=str(record.get("FileSystemLabel") or ""),
            file_system=file_system,
        )

    def block_size_providers(self) -> Sequence[BlockSizeProvider]:
        return self._providers

    def set_drive_letter(self, partition: PartitionState, letter: str) -> None:
        self.invoke(
            f"Set-Partition -DiskNumber {partition.disk_number}"
            f" -PartitionNumber {partition.partition_number} -NewDriveLetter {letter}"
        )

    def add_access_path(self, partition: PartitionState, path: str) -> None:
        self.invoke(
            f"Add-PartitionAccessPath -DiskNumber {partition.disk_number}"
            f" -PartitionNumber {partition.partition_number} -AccessPath {quote(path)}"
        )

    def remove_access_path(self, partition: PartitionState, path: str) -> None:
        self.invoke(
            f"Remove-PartitionAccessPath -DiskNumber {partition.disk_number}"
            f" -PartitionNumber {partition.partition_number} -AccessPath {quote(path)}"
        )
