"""Tests for CLI entry point."""

import argparse
import json

import pytest

from disk_reconcile import cli, powershell
from disk_reconcile.powershell import CommandOutput

GUID = "0a1b2c3d-0000-4000-8000-00000000abcd"
NATIVE = "\\\\?\\Volume{" + GUID + "}\\"


def install_runner(monkeypatch, responses):
    """Route every PowerShell invocation through *responses*.

    Keys are script fragments checked in order; the first match answers.
    """

    scripts = []

    def fake_run(cmd):
        script = cmd[-1]
        scripts.append(script)
        for fragment, output in responses:
            if fragment in script:
                return output
        return CommandOutput(stdout="")

    monkeypatch.setattr(powershell, "_default_run", fake_run)
    return scripts


def disk_json(style="GPT", offline=False):
    return CommandOutput(
        stdout=json.dumps(
            {"Number": 1, "IsOffline": offline, "IsReadOnly": False, "PartitionStyle": style}
        )
    )


def lettered_disk(letter="G"):
    partition = {
        "DiskNumber": 1,
        "PartitionNumber": 2,
        "Size": 1073741824,
        "DriveLetter": letter,
        "AccessPaths": [f"{letter}:\\", NATIVE],
    }
    return [
        ("Get-Disk", disk_json()),
        ("Get-Volume", CommandOutput(stdout='{"FileSystemLabel": "Data", "FileSystem": "NTFS"}')),
        ("Win32_Volume", CommandOutput(stdout="4096\n")),
        ("Get-Partition", CommandOutput(stdout=json.dumps(partition))),
    ]


def test_parse_size():
    assert cli.parse_size("64K") == 65536
    assert cli.parse_size("20gb") == 20 * 1024 ** 3
    assert cli.parse_size("1073741824") == 1073741824
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_size("lots")
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_size("0")


def test_cli_get(monkeypatch, capsys):
    install_runner(monkeypatch, lettered_disk())

    assert cli.main(["get", "--disk-number", "1", "--mount-target", "G"]) == 0

    state = json.loads(capsys.readouterr().out)
    assert state == {
        "disk_number": 1,
        "mount_target": "G",
        "size": 1073741824,
        "label": "Data",
        "allocation_unit_size": 4096,
    }


def test_cli_test_exit_codes(monkeypatch, capsys):
    install_runner(monkeypatch, lettered_disk())

    assert cli.main(["test", "--disk-number", "1", "--mount-target", "G", "--label", "Data"]) == 0
    assert json.loads(capsys.readouterr().out) == {"converged": True}

    assert cli.main(["test", "--disk-number", "1", "--mount-target", "F"]) == 1
    assert json.loads(capsys.readouterr().out) == {"converged": False}


def test_cli_set_is_dry_without_exec(monkeypatch, capsys):
    monkeypatch.delenv("DISK_RECONCILE_EXEC", raising=False)
    scripts = install_runner(monkeypatch, lettered_disk())

    assert cli.main(["set", "--disk-number", "1", "--mount-target", "F"]) == 0

    result = json.loads(capsys.readouterr().out)
    assert result["actions"] == ["set_drive_letter"]
    assert result["commands"] == ["Set-Partition -DiskNumber 1 -PartitionNumber 2 -NewDriveLetter F"]
    assert result["executed"] is False
    assert not any("Set-Partition" in script for script in scripts)


def test_cli_set_dry_run_on_raw_disk(monkeypatch, capsys):
    monkeypatch.setenv("DISK_RECONCILE_EXEC", "1")
    sleeps = []
    monkeypatch.setattr("time.sleep", sleeps.append)
    scripts = install_runner(monkeypatch, [("Get-Disk", disk_json(style="RAW"))])

    code = cli.main(
        [
            "set",
            "--disk-number",
            "1",
            "--mount-target",
            "D",
            "--size",
            "20G",
            "--label",
            "Data",
            "--allocation-unit-size",
            "64K",
            "--dry-run",
        ]
    )

    assert code == 0
    result = json.loads(capsys.readouterr().out)
    assert result["actions"] == ["initialize_gpt", "create_partition", "settle", "format_volume"]
    assert result["executed"] is False
    assert result["commands"][0] == "Initialize-Disk -Number 1 -PartitionStyle GPT"
    assert "-Size 21474836480" in result["commands"][1]
    assert result["commands"][2].endswith("-NewFileSystemLabel 'Data' -AllocationUnitSize 65536")
    assert sleeps == []
    assert not any("Initialize-Disk" in script for script in scripts)


def test_cli_set_executes_when_enabled(monkeypatch, capsys):
    monkeypatch.setenv("DISK_RECONCILE_EXEC", "1")
    scripts = install_runner(monkeypatch, lettered_disk())

    assert cli.main(["set", "--disk-number", "1", "--mount-target", "F"]) == 0

    result = json.loads(capsys.readouterr().out)
    assert result["executed"] is True
    assert (
        "$ErrorActionPreference = 'Stop'; "
        "Set-Partition -DiskNumber 1 -PartitionNumber 2 -NewDriveLetter F"
    ) in scripts


def test_cli_set_failure_exit_code(monkeypatch, capsys):
    monkeypatch.setenv("DISK_RECONCILE_EXEC", "1")
    install_runner(
        monkeypatch,
        [
            ("Get-Disk", disk_json(offline=True)),
            ("Set-Disk", CommandOutput(stdout="", returncode=1, stderr="access denied")),
        ],
    )

    assert cli.main(["set", "--disk-number", "1", "--mount-target", "D"]) == 2

    err = capsys.readouterr().err
    assert "disk-reconcile: set_online failed on disk 1" in err
    assert "access denied" in err


def test_cli_set_missing_disk(monkeypatch, capsys):
    install_runner(monkeypatch, [])
    assert cli.main(["set", "--disk-number", "5", "--mount-target", "D"]) == 2
    assert "disk not found" in capsys.readouterr().err


def test_cli_rejects_invalid_mount_target(monkeypatch):
    install_runner(monkeypatch, [])
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["get", "--disk-number", "1", "--mount-target", "7"])
    assert excinfo.value.code == 2
