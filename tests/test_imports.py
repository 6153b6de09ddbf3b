"""Basic import tests for the disk_reconcile package."""

from pathlib import Path
import sys

# Ensure repository root is on sys.path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))


def test_import_package() -> None:
    import disk_reconcile

    assert isinstance(disk_reconcile.__version__, str)


def test_import_modules() -> None:
    from disk_reconcile import (  # noqa: F401
        block_size,
        comparator,
        config,
        converger,
        errors,
        models,
        powershell,
        reader,
        resource,
        store,
    )


def test_import_cli_entrypoint() -> None:
    """Ensure the CLI module imports without missing dependencies."""

    __import__("disk_reconcile.cli")
