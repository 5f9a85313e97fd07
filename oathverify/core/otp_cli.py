#!/usr/bin/env python3
"""
otp_cli.py — CLI wrapper around the verification engine and the device store.

Subcommands:
- setup-db   : create the sqlite tables
- add-device : store a provisioned device (hex secret)
- show       : print the non-secret state of a device
- verify     : verify an OTP code (TOTP or HOTP) for a device
"""

import argparse
import json
import logging
import sys
import time

from oathverify.core.config import OathAlgorithm, VerifierConfig
from oathverify.core.device import DeviceSettings
from oathverify.database import db_manager
from oathverify.database.setup_database import DATABASE_FILE, setup_database


# --- CLI command handlers ---
def cmd_setup_db(args):
    setup_database(args.db)
    print(f"[*] Database ready at {args.db}")
    return 0


def cmd_add_device(args):
    device = DeviceSettings(
        shared_secret=args.secret,
        counter=args.counter,
        device_name=args.device,
        checksum_digit=args.checksum,
    )
    ok, result = db_manager.add_device(device, path=args.db)
    if not ok:
        print(f"[!] {result}")
        return 1
    print(f"[+] Device '{args.device}' added")
    return 0


def cmd_show(args):
    device = db_manager.get_device(args.device, path=args.db)
    if device is None:
        print(f"[!] Device '{args.device}' not found")
        return 1
    print(json.dumps(device.public_dict(), indent=2))
    return 0


def _config_from_args(args, algorithm: OathAlgorithm) -> VerifierConfig:
    cfg = {"algorithm": algorithm.value}
    for name in ("min_shared_secret_length", "password_length", "hotp_window_size",
                 "totp_time_step_interval", "totp_time_step_in_window", "totp_max_clock_drift"):
        value = getattr(args, name, None)
        if value is not None:
            cfg[name] = value
    if getattr(args, "checksum", False):
        cfg["checksum"] = True
    return VerifierConfig.from_dict(cfg)


def _report(device: str, outcome: str) -> int:
    if outcome == db_manager.OUTCOME_SUCCESS:
        print(f"[device={device}] [+] OTP code is VALID")
        return 0
    print(f"[device={device}] [-] OTP code is INVALID ({outcome})")
    return 1


def cmd_verify_totp(args):
    config = _config_from_args(args, OathAlgorithm.TOTP)
    now = args.now if args.now is not None else int(time.time())
    outcome = db_manager.verify_device_otp(args.device, args.code, config, now=now, path=args.db)
    return _report(args.device, outcome)


def cmd_verify_hotp(args):
    config = _config_from_args(args, OathAlgorithm.HOTP)
    outcome = db_manager.verify_device_otp(args.device, args.code, config, path=args.db)
    return _report(args.device, outcome)


def cmd_help(args):
    print("'oathverify-cli -h' for help.")
    return 0


# --- Argparse builder ---
def _add_common_verify_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--device", required=True, help="Device name")
    p.add_argument("--code", required=True, help="OTP code to verify")
    p.add_argument("--digits", dest="password_length", type=int, help="Override number of digits")
    p.add_argument("--min-secret-length", dest="min_shared_secret_length", type=int,
                   help="Minimum shared secret length (bytes)")
    p.add_argument("--checksum", action="store_true", help="Codes carry a checksum digit")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="OATH HOTP/TOTP verification CLI")
    p.add_argument("--db", default=DATABASE_FILE, help="sqlite database file")
    p.add_argument("--verbose", action="store_true", help="Verbose logging")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    # setup-db
    ps = sub.add_parser("setup-db", help="Create the device database")
    ps.set_defaults(func=cmd_setup_db)

    # add-device
    pa = sub.add_parser("add-device", help="Store a provisioned device")
    pa.add_argument("--device", required=True, help="Device name")
    pa.add_argument("--secret", required=True, help="Hex-encoded shared secret")
    pa.add_argument("--counter", type=int, default=0, help="Initial HOTP counter")
    pa.add_argument("--checksum", action="store_true", help="Device appends a checksum digit")
    pa.set_defaults(func=cmd_add_device)

    # show
    pw = sub.add_parser("show", help="Show device verification state")
    pw.add_argument("--device", required=True, help="Device name")
    pw.set_defaults(func=cmd_show)

    # verify
    pv = sub.add_parser("verify", help="Verify an OTP code (TOTP or HOTP)")
    sub_v = pv.add_subparsers(dest="verify_type")

    pvt = sub_v.add_parser("totp", help="Verify a TOTP code")
    _add_common_verify_args(pvt)
    pvt.add_argument("--period", dest="totp_time_step_interval", type=int, help="Override TOTP period")
    pvt.add_argument("--window", dest="totp_time_step_in_window", type=int,
                     help="Allowed +/- step window")
    pvt.add_argument("--max-drift", dest="totp_max_clock_drift", type=int,
                     help="Maximum clock drift (time steps)")
    pvt.add_argument("--now", type=int, help="Epoch seconds to verify at (default: now)")
    pvt.set_defaults(func=cmd_verify_totp)

    pvh = sub_v.add_parser("hotp", help="Verify a HOTP code")
    _add_common_verify_args(pvh)
    pvh.add_argument("--look-ahead", dest="hotp_window_size", type=int,
                     help="Allowed counter look-ahead")
    pvh.set_defaults(func=cmd_verify_hotp)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    if args.cmd == "verify" and not getattr(args, "verify_type", None):
        parser.print_help()
        return 2
    if args.cmd not in (None, "setup-db"):
        # tables are created on first use so a fresh --db path is not an error
        setup_database(args.db)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
