#!/usr/bin/env python3
"""
config-rom-pretty-printer - dump an IEEE 1212 configuration ROM as text.

Usage:
  config-rom-pretty-printer < /sys/bus/firewire/devices/fw0/config_rom
  config-rom-pretty-printer rom.img
  config-rom-pretty-printer --json rom.img
"""

import argparse
import json
import logging
import sys
from logging import getLogger
from typing import List, Optional

from .errors import ConfigROMError
from .parser import CONFIG_ROM_SIZE, parse_config_rom
from .printer import dump_config_rom

logger = getLogger(__name__)

TERMINAL_MESSAGE = (
    "A terminal is detected for standard input. Output from any process or shell "
    "redirection should be referred instead."
)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="config-rom-pretty-printer",
        description="Decode and dump an IEEE 1212 Configuration ROM",
    )
    parser.add_argument(
        "rom_file",
        nargs="?",
        help="Path to binary ROM image file (.img or .bin); standard input when omitted",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the block layout and checksum findings as JSON instead of text.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Trace block discovery on standard error.",
    )
    return parser.parse_args(argv)


def init_logging(verbose: bool = False) -> None:
    logging.basicConfig(format="* %(message)s")
    # basicConfig leaves an already configured root logger alone
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.WARNING)


def read_rom(path: Optional[str]) -> bytes:
    if path:
        with open(path, "rb") as f:
            return f.read(CONFIG_ROM_SIZE)
    return sys.stdin.buffer.read(CONFIG_ROM_SIZE)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    init_logging(args.verbose)

    if not args.rom_file and sys.stdin.isatty():
        print(TERMINAL_MESSAGE, file=sys.stderr)
        return 1

    try:
        rom_data = read_rom(args.rom_file)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if not rom_data:
        print("Error: no ROM data", file=sys.stderr)
        return 1

    try:
        rom = parse_config_rom(rom_data)
    except ConfigROMError as e:
        print(f"Error parsing ROM: {e}", file=sys.stderr)
        return 1

    for finding in rom.checksum_findings():
        logger.warning("%s", finding)

    if args.json:
        print(json.dumps(rom.to_dict(), indent=2))
    else:
        sys.stdout.write(dump_config_rom(rom))
    return 0


if __name__ == "__main__":
    sys.exit(main())
