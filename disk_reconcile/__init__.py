"""Declarative disk initialisation, partitioning and mount reconciliation."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as pkg_version

__all__ = [
    "block_size",
    "comparator",
    "converger",
    "models",
    "powershell",
    "reader",
    "resource",
    "store",
]


def _discover_version() -> str:
    try:
        return pkg_version("disk-reconcile")
    except PackageNotFoundError:
        return "unknown"


__version__ = _discover_version()
