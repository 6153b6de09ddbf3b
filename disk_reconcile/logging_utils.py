"""JSON event log shared by the reader, comparator, converger and Disk Store."""

from __future__ import annotations

import datetime as _dt
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

_FALSE_VALUES = {"", "0", "false", "no"}


def _serialise(value: Any) -> Any:
    """Convert *value* into something ``json.dumps`` accepts."""

    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): _serialise(item) for key, item in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_serialise(item) for item in value]
    return repr(value)


def _logs_enabled() -> bool:
    value = os.environ.get("DISK_RECONCILE_LOG_EVENTS")
    return value is not None and value.strip().lower() not in _FALSE_VALUES


def _build_record(event: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "timestamp": _dt.datetime.now(_dt.timezone.utc).isoformat(),
        "event": event,
    }
    record.update((str(key), _serialise(value)) for key, value in fields.items())
    return record


def log_event(event: str, **fields: Any) -> None:
    """Write one JSON line describing *event* to ``stderr``.

    Nothing is written unless ``DISK_RECONCILE_LOG_EVENTS`` is set. The UTC
    timestamp lets a host engine order lines from separate Get/Test/Set
    invocations; field values JSON cannot represent are logged as ``repr``.
    """

    if not _logs_enabled():
        return

    line = json.dumps(_build_record(event, fields), sort_keys=True)
    sys.stderr.write(line + "\n")
    sys.stderr.flush()
    _append_to_log_file(line)


def _log_file_path() -> Optional[Path]:
    """Return ``DISK_RECONCILE_LOG_FILE`` as a path; ``None`` when unset."""

    value = (os.environ.get("DISK_RECONCILE_LOG_FILE") or "").strip()
    return Path(value) if value else None


def _append_to_log_file(line: str) -> None:
    log_file = _log_file_path()
    if log_file is None:
        return
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        with log_file.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
    except OSError as exc:
        # The event already reached stderr; report the file problem there too.
        sys.stderr.write(f"disk-reconcile: cannot append to {log_file}: {exc}\n")
        sys.stderr.flush()
