#!/usr/bin/env python3
"""Launch the motor-controller dashboard."""

from __future__ import annotations

import argparse
import logging
import sys

from osh_dashboard.gui.main_window import run_gui
from osh_dashboard.io import SettingsError, load_config


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--address", help="Device IP or host name to connect to immediately.")
    parser.add_argument("--settings", help="Optional path to a settings YAML file.")
    parser.add_argument(
        "--no-auto-connect",
        action="store_true",
        help="Do not reconnect to the last known device address at startup.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    try:
        config = load_config(args.settings)
    except SettingsError as exc:
        raise SystemExit(f"Invalid settings: {exc}") from exc
    return run_gui(config, address=args.address, auto_connect=not args.no_auto_connect)


if __name__ == "__main__":
    sys.exit(main())
