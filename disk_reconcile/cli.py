"""CLI entry point for disk-reconcile."""

import argparse
import json
import sys
from typing import Optional

from . import config, resource
from .errors import ConvergeError
from .powershell import PowerShellDiskStore

_UNITS = {
    "K": 1024,
    "M": 1024 ** 2,
    "G": 1024 ** 3,
    "T": 1024 ** 4,
}


def parse_size(value: str) -> int:
    """Parse sizes like ``"64K"``, ``"20G"`` or ``"1073741824"`` into bytes."""

    text = value.strip().upper()
    if text.endswith("B"):
        text = text[:-1]
    multiplier = 1
    if text and text[-1] in _UNITS:
        multiplier = _UNITS[text[-1]]
        text = text[:-1]
    try:
        number = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid size: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"size must be positive: {value!r}")
    return number * multiplier


def _skip_settle() -> None:
    return None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="disk-reconcile",
        description="Initialise, partition, format and mount a disk declaratively",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--disk-number", type=int, required=True)
        sub.add_argument(
            "--mount-target",
            required=True,
            help="Drive letter (e.g. D) or mount-point path (e.g. C:\\mnt\\data)",
        )

    def add_desired(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--size", type=parse_size, help="Exact partition size")
        sub.add_argument("--label", help="Filesystem label")
        sub.add_argument(
            "--allocation-unit-size",
            type=parse_size,
            help="NTFS allocation unit size used when formatting",
        )

    get_parser = subparsers.add_parser("get", help="Print the current state")
    add_common(get_parser)

    test_parser = subparsers.add_parser(
        "test", help="Exit 0 when the disk is already in the desired state"
    )
    add_common(test_parser)
    add_desired(test_parser)

    set_parser = subparsers.add_parser("set", help="Bring the disk to the desired state")
    add_common(set_parser)
    add_desired(set_parser)
    set_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the commands that would run",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run the disk-reconcile tool."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "set":
        execute = not args.dry_run and config.execution_enabled()
    else:
        execute = False
    store = PowerShellDiskStore(execute=execute)

    try:
        if args.command == "get":
            state = resource.get_resource(store, args.disk_number, args.mount_target)
            print(json.dumps(state, indent=2))
            return 0

        if args.command == "test":
            converged = resource.is_converged(
                store,
                args.disk_number,
                args.mount_target,
                size=args.size,
                label=args.label,
                allocation_unit_size=args.allocation_unit_size,
            )
            print(json.dumps({"converged": converged}))
            return 0 if converged else 1

        actions = resource.converge(
            store,
            args.disk_number,
            args.mount_target,
            size=args.size,
            label=args.label,
            allocation_unit_size=args.allocation_unit_size,
            # Nothing was created when commands are skipped.
            settle=None if execute else _skip_settle,
        )
    except ValueError as exc:
        parser.error(str(exc))
    except ConvergeError as exc:
        print(f"disk-reconcile: {exc}", file=sys.stderr)
        return 2

    print(
        json.dumps(
            {"actions": actions, "commands": store.commands, "executed": store.execute},
            indent=2,
        )
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
