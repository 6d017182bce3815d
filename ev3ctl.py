#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Command line tool for LEGO EV3 bricks over Bluetooth.

Usage:
    python ev3ctl.py --address 00:16:53:12:34:56 upload sound.rsf ../prjs/demo/sound.rsf
    python ev3ctl.py --address /dev/rfcomm0 ls /home/root/lms2012/prjs/
    python ev3ctl.py led orange_pulse
    python ev3ctl.py name ROBOT

The address defaults to $EV3_ADDRESS.

Requirements:
    pip install pyserial
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from ev3_protocol import Brick, LedColour
from ev3_protocol.errors import EV3Error, TransferError
from ev3_protocol.transport import DEFAULT_TIMEOUT

BEEP = [(1000, 150, 30), (1500, 150, 30)]


def cmd_upload(brick: Brick, file: Path, destination: str) -> bool:
    """Upload a local file to the brick."""
    data = file.read_bytes()

    print(f"File:   {file} ({len(data)} bytes)")
    print(f"Target: {destination}")
    print()

    def progress(sent: int, total: int):
        pct = sent * 100 // total
        print(f"\rUploading: {pct:3d}% ({sent}/{total} bytes)", end="", flush=True)

    try:
        transfer = brick.upload(destination, data, progress_callback=progress)
    except TransferError as e:
        print(f"\nFAILED: {e}")
        return False

    print("\rUploading: 100% - Complete!          ")
    print(f"Stored as {transfer.device_path} ({transfer.chunks_sent} chunks)")
    return True


def cmd_ls(brick: Brick, path: str):
    """List a directory on the brick."""
    for entry in brick.list_directory(path):
        print(entry)


def cmd_led(brick: Brick, colour: str):
    brick.set_led_colour(LedColour[colour.upper()])


def cmd_name(brick: Brick, name: str):
    brick.set_brick_name(name)
    print(f"Brick renamed to {name}")


def cmd_beep(brick: Brick):
    brick.play_tone_sequence(BEEP)


def cmd_stop(brick: Brick, brake: bool):
    brick.all_stop(brake=int(brake))


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Control a LEGO EV3 brick over Bluetooth"
    )
    parser.add_argument(
        "--address", "-a",
        default=os.environ.get("EV3_ADDRESS"),
        help="Bluetooth address or serial port (default: $EV3_ADDRESS)"
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float, default=DEFAULT_TIMEOUT,
        help="Reply timeout in seconds"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count", default=0,
        help="Log connection events (-v) and frame dumps (-vv)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    upload_parser = subparsers.add_parser("upload", help="Upload a file to the brick")
    upload_parser.add_argument("file", type=Path, help="Local file")
    upload_parser.add_argument("destination", help="Path on the brick")

    ls_parser = subparsers.add_parser("ls", help="List a directory on the brick")
    ls_parser.add_argument("path", nargs="?", default="/home/root/lms2012/prjs/")

    led_parser = subparsers.add_parser("led", help="Set the button LED colour")
    led_parser.add_argument("colour", choices=[c.name.lower() for c in LedColour])

    name_parser = subparsers.add_parser("name", help="Rename the brick")
    name_parser.add_argument("name")

    subparsers.add_parser("beep", help="Play a short tone")

    stop_parser = subparsers.add_parser("stop", help="Stop all motors")
    stop_parser.add_argument("--brake", action="store_true", help="Brake instead of coasting")

    args = parser.parse_args(argv)

    if not args.address:
        parser.error("no address given (use --address or set EV3_ADDRESS)")

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "upload" and not args.file.exists():
        print(f"Error: File not found: {args.file}")
        sys.exit(1)

    try:
        brick = Brick.open(args.address, timeout=args.timeout)
    except EV3Error as e:
        print(f"Error opening {args.address}: {e}")
        sys.exit(1)

    ok = True
    try:
        if args.command == "upload":
            ok = cmd_upload(brick, args.file, args.destination)
        elif args.command == "ls":
            cmd_ls(brick, args.path)
        elif args.command == "led":
            cmd_led(brick, args.colour)
        elif args.command == "name":
            cmd_name(brick, args.name)
        elif args.command == "beep":
            cmd_beep(brick)
        elif args.command == "stop":
            cmd_stop(brick, args.brake)
    except EV3Error as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        brick.close()

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
