import json
from pathlib import Path

from disk_reconcile.logging_utils import _log_file_path, log_event
from disk_reconcile.models import DriveLetter


def test_log_event_emits_json_to_stderr(capsys, monkeypatch) -> None:
    monkeypatch.setenv("DISK_RECONCILE_LOG_EVENTS", "1")

    log_event("disk_reconcile.test", path=Path("/tmp/demo"), value=5, paths=("D:\\",))

    captured = capsys.readouterr()
    assert captured.out == ""
    lines = [line for line in captured.err.splitlines() if line.strip()]
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["event"] == "disk_reconcile.test"
    assert record["path"] == "/tmp/demo"
    assert record["value"] == 5
    assert record["paths"] == ["D:\\"]
    assert "timestamp" in record


def test_log_event_silent_by_default(capsys, monkeypatch) -> None:
    monkeypatch.delenv("DISK_RECONCILE_LOG_EVENTS", raising=False)
    log_event("disk_reconcile.test")
    assert capsys.readouterr().err == ""


def test_log_event_disabled_by_false_value(capsys, monkeypatch) -> None:
    monkeypatch.setenv("DISK_RECONCILE_LOG_EVENTS", "no")
    log_event("disk_reconcile.test")
    assert capsys.readouterr().err == ""


def test_unserialisable_values_use_repr(capsys, monkeypatch) -> None:
    monkeypatch.setenv("DISK_RECONCILE_LOG_EVENTS", "1")
    log_event("disk_reconcile.test", target=DriveLetter("D"))
    record = json.loads(capsys.readouterr().err)
    assert record["target"] == "DriveLetter(letter='D')"


def test_log_file_is_opt_in(monkeypatch) -> None:
    monkeypatch.delenv("DISK_RECONCILE_LOG_FILE", raising=False)
    assert _log_file_path() is None
    monkeypatch.setenv("DISK_RECONCILE_LOG_FILE", "  ")
    assert _log_file_path() is None


def test_log_event_appends_to_file(tmp_path, capsys, monkeypatch) -> None:
    monkeypatch.setenv("DISK_RECONCILE_LOG_EVENTS", "1")
    log_path = tmp_path / "logs" / "reconcile.log"
    monkeypatch.setenv("DISK_RECONCILE_LOG_FILE", str(log_path))

    log_event("disk_reconcile.test.file", payload={"key": "value"})

    captured = capsys.readouterr()
    stderr_lines = [line for line in captured.err.splitlines() if line.strip()]
    assert len(stderr_lines) == 1
    stderr_record = json.loads(stderr_lines[0])

    file_lines = log_path.read_text(encoding="utf-8").splitlines()
    assert len(file_lines) == 1
    file_record = json.loads(file_lines[0])

    assert file_record == stderr_record
    assert file_record["payload"] == {"key": "value"}


def test_unwritable_log_file_is_reported_on_stderr(tmp_path, capsys, monkeypatch) -> None:
    monkeypatch.setenv("DISK_RECONCILE_LOG_EVENTS", "1")
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")
    monkeypatch.setenv("DISK_RECONCILE_LOG_FILE", str(blocker / "reconcile.log"))

    log_event("disk_reconcile.test.unwritable")

    lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
    assert json.loads(lines[0])["event"] == "disk_reconcile.test.unwritable"
    assert lines[1].startswith("disk-reconcile: cannot append to ")
