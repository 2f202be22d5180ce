#!/usr/bin/env python3
"""
RightsLedger Command Line Interface.

Provides commands for running and inspecting RightsLedger:
    - serve: Run the ledger HTTP API (Flask, or gunicorn with --production)
    - check: Check imports and the configured contract store
    - info: Show version, settings and store record counts
    - backup: Copy the JSON contract store aside
    - validate: Print a contract's split validation report
    - resolve: Print the effective terms of a scheduled work
    - export: Print registration export rows for a scheduled work

Usage:
    rightsledger serve [--host HOST] [--port PORT] [--debug] [--production]
    rightsledger check
    rightsledger info
    rightsledger backup [--output PATH]
    rightsledger validate CONTRACT_ID
    rightsledger resolve CONTRACT_ID WORK_ID
    rightsledger export CONTRACT_ID WORK_ID
    rightsledger --version
"""

import argparse
import importlib
import importlib.util
import json
import os
import sys

# Ensure src is in path when running from source
if os.path.exists(os.path.join(os.path.dirname(__file__), "ledger_service.py")):
    sys.path.insert(0, os.path.dirname(__file__))

VERSION = "0.1.0"

# (name, default shown when unset)
SETTINGS = (
    ("STORAGE_BACKEND", "json (default)"),
    ("CONTRACT_DATA_FILE", "contract_data.json (default)"),
    ("LOG_LEVEL", "INFO (default)"),
    ("LOG_FORMAT", "console (default)"),
    ("LOG_FILE", "not set"),
)


def _get_flask_app():
    from api import create_app

    return create_app()


def _get_service():
    from dotenv import load_dotenv

    from ledger_service import RoyaltyLedgerService
    from storage import get_storage_backend

    load_dotenv()
    return RoyaltyLedgerService(get_storage_backend())


def _print_result(success, result) -> int:
    print(json.dumps(result, indent=2, default=str))
    return 0 if success else 1


def _run_gunicorn(app, bind: str, workers: int) -> None:
    import gunicorn.app.base

    class LedgerServer(gunicorn.app.base.BaseApplication):
        def __init__(self, application, options):
            self.options = options
            self.application = application
            super().__init__()

        def load_config(self):
            for key, value in self.options.items():
                if key in self.cfg.settings:
                    self.cfg.set(key, value)

        def load(self):
            return self.application

    LedgerServer(app, {
        "bind": bind,
        "workers": workers,
        "worker_class": "sync",
        "timeout": 120,
        "accesslog": "-",
        "errorlog": "-",
    }).run()


def cmd_serve(args):
    """Run the HTTP API, under gunicorn with --production."""
    from dotenv import load_dotenv

    load_dotenv()
    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = args.port or int(os.getenv("PORT", 5000))
    print(f"Starting RightsLedger API server on {host}:{port}")

    if not args.production:
        debug = args.debug or os.getenv("FLASK_DEBUG", "").lower() == "true"
        _get_flask_app().run(host=host, port=port, debug=debug)
        return

    if importlib.util.find_spec("gunicorn") is None:
        print("Error: gunicorn not installed. Install with: pip install rightsledger[production]")
        sys.exit(1)
    # The JSON file backend is single-writer; keep one worker unless asked
    workers = args.workers or int(os.getenv("WORKERS", 1))
    _run_gunicorn(_get_flask_app(), f"{host}:{port}", workers)


def _check_module(module: str) -> str:
    try:
        importlib.import_module(module)
    except ImportError as e:
        return f"FAIL: {e}"
    return "OK"


def _check_storage() -> tuple[str, str]:
    from storage import StorageError, get_storage_backend

    try:
        store = get_storage_backend()
    except StorageError as e:
        return "Storage", f"FAIL: {e}"
    status = "OK" if store.is_available() else "WARN (not available)"
    return f"Storage ({type(store).__name__})", status


def cmd_check(args):
    """Import the ledger and API modules and check the configured store."""
    results = [
        ("Ledger core", _check_module("split_validator")),
        ("Flask API", _check_module("api")),
        _check_storage(),
    ]
    if importlib.util.find_spec("gunicorn") is None:
        results.append(("Production server (gunicorn)", "SKIP (gunicorn not installed)"))
    else:
        results.append(("Production server (gunicorn)", "OK"))

    print("RightsLedger Installation Check")
    print("=" * 40)
    print()
    failed = False
    for name, status in results:
        if status == "OK":
            mark = "✓"
        elif status.startswith("FAIL"):
            mark, failed = "✗", True
        else:
            mark = "○"
        print(f"  {mark} {name}: {status}")
    print()
    print("Some checks failed. See above for details." if failed else "All checks passed!")
    return 1 if failed else 0


def cmd_info(args):
    """Show version, configuration and the configured store's record counts."""
    import platform

    from storage import StorageError, get_storage_backend

    print("RightsLedger System Information")
    print("=" * 40)
    print(f"Version: {VERSION}")
    print(f"Python: {platform.python_version()} on {platform.platform()}")
    print()
    print("Configuration:")
    for name, fallback in SETTINGS:
        print(f"  {name}: {os.getenv(name, fallback)}")
    print()
    print("Storage:")
    try:
        details = get_storage_backend().get_info()
    except StorageError as e:
        print(f"  Error: {e}")
        return 1
    for key, value in details.items():
        print(f"  {key}: {value}")
    return 0


def cmd_backup(args):
    """Copy the JSON contract store aside."""
    from storage import JSONFileStorage, StorageError, get_storage_backend

    try:
        store = get_storage_backend()
        if not isinstance(store, JSONFileStorage):
            print(f"Error: {type(store).__name__} has nothing on disk to back up")
            return 1
        path = store.backup(args.output)
    except StorageError as e:
        print(f"Error: {e}")
        return 1
    print(f"Backed up {store.file_path} to {path}")
    return 0


def cmd_validate(args):
    """Print a contract's split validation report."""
    return _print_result(*_get_service().validate(args.contract_id))


def cmd_resolve(args):
    """Print the effective terms of one scheduled work."""
    return _print_result(*_get_service().resolve_effective_terms(args.contract_id, args.work_id))


def cmd_export(args):
    """Print registration export rows for one scheduled work."""
    return _print_result(*_get_service().export_registration_rows(args.contract_id, args.work_id))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rightsledger",
        description="RightsLedger - Royalty rights ledger for music contracts",
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {VERSION}")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve_parser = subparsers.add_parser("serve", help="Run the ledger HTTP API")
    serve_parser.add_argument("--host", help="Bind address (HOST, default 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Bind port (PORT, default 5000)")
    serve_parser.add_argument("--debug", action="store_true", help="Run Flask with the debugger")
    serve_parser.add_argument("--production", action="store_true", help="Serve through gunicorn")
    serve_parser.add_argument("--workers", type=int, help="gunicorn worker count (WORKERS, default 1)")

    subparsers.add_parser("check", help="Check imports and the contract store")
    subparsers.add_parser("info", help="Show version, settings and store counts")

    backup_parser = subparsers.add_parser("backup", help="Copy the JSON contract store aside")
    backup_parser.add_argument("--output", "-o", help="Destination (default: timestamped sibling file)")

    validate_parser = subparsers.add_parser("validate", help="Print a contract's validation report")
    validate_parser.add_argument("contract_id")

    resolve_parser = subparsers.add_parser("resolve", help="Print a work's effective terms")
    resolve_parser.add_argument("contract_id")
    resolve_parser.add_argument("work_id")

    export_parser = subparsers.add_parser("export", help="Print a work's registration export rows")
    export_parser.add_argument("contract_id")
    export_parser.add_argument("work_id")

    return parser


COMMANDS = {
    "check": cmd_check,
    "info": cmd_info,
    "backup": cmd_backup,
    "validate": cmd_validate,
    "resolve": cmd_resolve,
    "export": cmd_export,
}


def main(argv=None):
    """Parse argv and dispatch; exits with the command's status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command in COMMANDS:
        sys.exit(COMMANDS[args.command](args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
