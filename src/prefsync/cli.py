from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any

from .config import default_storage_path, poll_interval
from .dispatch import QueueDispatcher
from .errors import PrefsyncError
from .manager import PreferenceManager
from .serialization import encode
from .storage import FileStorage, open_storage


class Session:
    """A storage file plus a manager with every known preference defined.

    Names come from the ``--defaults`` file; names only present in storage
    are defined with a ``null`` default so they can still be inspected.
    """

    def __init__(self, args: argparse.Namespace) -> None:
        path = Path(args.file) if args.file else default_storage_path()
        self.dispatcher = QueueDispatcher()
        self.storage = open_storage(path, dispatcher=self.dispatcher)
        self.manager = PreferenceManager(self.storage)
        if args.defaults:
            self.manager.define_preferences(_read_json_object(Path(args.defaults)))
        for key in self.storage.keys():
            name = self.manager.keys.to_name(key)
            if name is not None and name not in self.manager:
                self.manager.define_preference(name, None)

    def flush(self) -> None:
        self.dispatcher.run_pending()

    def close(self) -> None:
        self.manager.close()
        self.storage.close()


def _read_json_object(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise PrefsyncError(f"{path}: expected a JSON object")
    return data


def _parse_value(raw: str) -> Any:
    """Interpret *raw* as JSON, falling back to a plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def list_cmd(session: Session, args: argparse.Namespace) -> int:
    for name in sorted(session.manager.names()):
        marker = " (default)" if session.manager.is_default(name) else ""
        print(f"{name} = {encode(session.manager.get(name))}{marker}")
    return 0


def get_cmd(session: Session, args: argparse.Namespace) -> int:
    print(encode(session.manager.get(args.name)))
    return 0


def set_cmd(session: Session, args: argparse.Namespace) -> int:
    if args.name not in session.manager:
        session.manager.define_preference(args.name, None)
    session.manager.set(args.name, _parse_value(args.value))
    session.flush()
    return 0


def reset_cmd(session: Session, args: argparse.Namespace) -> int:
    session.manager.reset(args.name)
    session.flush()
    return 0


def export_cmd(session: Session, args: argparse.Namespace) -> int:
    print(json.dumps(session.manager.export_overrides(), indent=2, sort_keys=True))
    return 0


def import_cmd(session: Session, args: argparse.Namespace) -> int:
    data = _read_json_object(Path(args.path))
    for name in data:
        if name not in session.manager:
            session.manager.define_preference(name, None)
    session.manager.import_overrides(data, clear=args.clear)
    session.flush()
    return 0


def watch_cmd(session: Session, args: argparse.Namespace) -> int:
    storage = session.storage
    if not isinstance(storage, FileStorage):  # pragma: no cover - only files today
        print("watch needs a file storage", file=sys.stderr)
        return 2

    def _print(name: str, value: Any) -> None:
        print(f"{name} = {encode(value)}", flush=True)

    session.manager.watch_all(_print)
    interval = args.interval if args.interval is not None else poll_interval()
    polls = 0
    try:
        while args.count is None or polls < args.count:
            time.sleep(interval)
            storage.poll()
            for key in storage.keys():
                name = session.manager.keys.to_name(key)
                if name is not None and name not in session.manager:
                    # Already resolved from the new snapshot, so its event
                    # will not report a change.
                    session.manager.define_preference(name, None)
                    _print(name, session.manager.get(name))
            session.flush()
            polls += 1
    except KeyboardInterrupt:  # pragma: no cover - interactive
        pass
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prefsync", description="Inspect and edit synced preferences.")
    parser.add_argument("--file", help="Storage file (.json, .yaml, .yml)")
    parser.add_argument("--defaults", help="JSON object mapping preference names to defaults")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_list = subparsers.add_parser("list", help="List preferences and their effective values.")
    p_list.set_defaults(func=list_cmd)

    p_get = subparsers.add_parser("get", help="Print the effective value of NAME as JSON.")
    p_get.add_argument("name")
    p_get.set_defaults(func=get_cmd)

    p_set = subparsers.add_parser("set", help="Store VALUE (JSON, or a plain string) for NAME.")
    p_set.add_argument("name")
    p_set.add_argument("value")
    p_set.set_defaults(func=set_cmd)

    p_reset = subparsers.add_parser("reset", help="Remove the stored value for NAME.")
    p_reset.add_argument("name")
    p_reset.set_defaults(func=reset_cmd)

    p_export = subparsers.add_parser("export", help="Print overrides that differ from defaults.")
    p_export.set_defaults(func=export_cmd)

    p_import = subparsers.add_parser("import", help="Store every value from a JSON object file.")
    p_import.add_argument("path")
    p_import.add_argument("--clear", action="store_true", help="Reset preferences missing from the file")
    p_import.set_defaults(func=import_cmd)

    p_watch = subparsers.add_parser("watch", help="Print changes made by other processes.")
    p_watch.add_argument("--interval", type=float, default=None)
    p_watch.add_argument("--count", type=int, default=None, help="Stop after N polls")
    p_watch.set_defaults(func=watch_cmd)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    try:
        session = Session(args)
    except (OSError, ValueError, PrefsyncError) as exc:
        print(f"prefsync: {exc}", file=sys.stderr)
        return 2
    try:
        return int(args.func(session, args))
    except (OSError, ValueError, PrefsyncError) as exc:
        print(f"prefsync: {exc}", file=sys.stderr)
        return 2
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
