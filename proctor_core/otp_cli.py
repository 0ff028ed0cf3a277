#!/usr/bin/env python3
"""
otp_cli.py - CLI for the proctor side.

Subcommands:
- show     : print the current code, its neighbours and the time left (JSON)
- verify   : verify a code for a session against the configured ledger
- init-db  : create the ledger schema
- status   : print the number of consumed (window, session) records
- gen-seed : print a fresh random seed for PROCTOR_SEED

Configuration comes from the same environment variables as the server, eg..:
    PROCTOR_SEED=your-secret CODE_STEP_SECONDS=30 DRIFT_STEPS=1 proctor-code show
    proctor-code verify --session abc123 --code 123456
"""

import argparse
import json
import sys

import pyotp

from proctor_database import SqliteReplayGuard, StorageFailure, setup_database

from .config import ConfigError, Settings, configure_logging
from .otp_core import now_millis
from .verification import VerificationService

SEED_LENGTH = 32


def _load_settings() -> Settings:
    try:
        return Settings.from_env()
    except ConfigError as e:
        print(f"[!] {e}", file=sys.stderr)
        raise SystemExit(2)


# --- CLI command handlers ---
def cmd_help(args):
    print("'proctor-code -h' for help.")
    return 0


def cmd_show(args):
    settings = _load_settings()
    service = VerificationService.from_settings(settings, guard=None)
    if not service.configured:
        print("Missing PROCTOR_SEED", file=sys.stderr)
        return 1
    print(json.dumps(service.current_codes(now_millis()), indent=2))
    return 0


def cmd_verify(args):
    settings = _load_settings()
    try:
        guard = SqliteReplayGuard(settings.database_file)
    except StorageFailure as e:
        print(f"[!] {e}", file=sys.stderr)
        return 1
    service = VerificationService.from_settings(settings, guard)
    outcome = service.verify(args.session, args.code, now_millis())
    print(json.dumps(outcome.as_dict()))
    return 0 if outcome.ok else 1


def cmd_init_db(args):
    settings = _load_settings()
    setup_database(settings.database_file)
    print(f"[*] Ledger ready at {settings.database_file}")
    return 0


def cmd_status(args):
    settings = _load_settings()
    try:
        total = SqliteReplayGuard(settings.database_file).count()
    except StorageFailure as e:
        print(f"[!] {e}", file=sys.stderr)
        return 1
    print(json.dumps({"database": settings.database_file, "consumed": total}))
    return 0


def cmd_gen_seed(args):
    try:
        seed = pyotp.random_base32(length=args.length)
    except ValueError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 2
    print(seed)
    return 0


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="proctor-code", description="Proctor one-time code tool")
    p.add_argument("--verbose", action="store_true", help="Verbose logging")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    # show
    ps = sub.add_parser("show", help="Print the current code and its neighbours")
    ps.set_defaults(func=cmd_show)

    # verify
    pv = sub.add_parser("verify", help="Verify a code for a session against the ledger")
    pv.add_argument("--session", required=True, help="Session identifier (sid cookie value)")
    pv.add_argument("--code", required=True, help="Code to verify")
    pv.set_defaults(func=cmd_verify)

    # init-db
    pi = sub.add_parser("init-db", help="Create the ledger schema")
    pi.set_defaults(func=cmd_init_db)

    # status
    pst = sub.add_parser("status", help="Count consumed (window, session) records")
    pst.set_defaults(func=cmd_status)

    # gen-seed
    pg = sub.add_parser("gen-seed", help="Generate a random seed for PROCTOR_SEED")
    pg.add_argument("--length", type=int, default=SEED_LENGTH, help="Seed length (>= 32)")
    pg.set_defaults(func=cmd_gen_seed)

    return p


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "WARNING")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
