# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
EV3 Protocol - Python client for LEGO EV3 bricks over Bluetooth.

This package encodes EV3 direct and system commands, exchanges them with a
brick over an RFCOMM socket or serial port, and parses the replies.

Example usage:
    from ev3_protocol import Brick, LedColour, MOTOR_B, MOTOR_C, PORT_1

    with Brick.open("00:16:53:12:34:56") as brick:
        brick.set_led_colour(LedColour.ORANGE_PULSE)
        brick.drive(MOTOR_B, MOTOR_C, 50)
        if brick.read_touch_sensor(PORT_1):
            brick.all_stop(brake=1)

        brick.upload_file(
            "../prjs/demo/hello.rsf",
            "hello.rsf",
            progress_callback=lambda sent, total: print(f"{sent}/{total}"),
        )
        print(brick.list_directory("/home/root/lms2012/prjs/"))
"""

from .bytecodes import (
    ALL_MOTORS,
    MOTOR_A,
    MOTOR_B,
    MOTOR_C,
    MOTOR_D,
    PORT_1,
    PORT_2,
    PORT_3,
    PORT_4,
    ColourIndex,
    LedColour,
    MessageType,
    ReplyType,
    SystemCommand,
    SystemStatus,
)
from .brick import Brick
from .catalog import CATALOG, LIST_CHUNK_SIZE, PARTITION_SIZE, CommandLayout
from .errors import (
    ConnectionError,
    DeviceError,
    EncodingError,
    EV3Error,
    IOError,
    ProtocolError,
    TimeoutError,
    TransferError,
    TransportError,
)
from .protocol import (
    RGB,
    CommandFrame,
    DirectReply,
    FrameHeader,
    SystemReply,
    ToneEvent,
    decode_command,
    decode_header,
    decode_reply_fields,
    encode_direct,
    encode_system,
    parse_direct,
    parse_system,
)
from .transfer import ALLOWED_UPLOAD_ROOTS, FileTransfer, UploadTransfer
from .transport import SessionState, Transport, connect

__version__ = "0.1.0"

__all__ = [
    # Byte codes
    "ALL_MOTORS",
    "MOTOR_A",
    "MOTOR_B",
    "MOTOR_C",
    "MOTOR_D",
    "PORT_1",
    "PORT_2",
    "PORT_3",
    "PORT_4",
    "ColourIndex",
    "LedColour",
    "MessageType",
    "ReplyType",
    "SystemCommand",
    "SystemStatus",
    # Catalog
    "CATALOG",
    "CommandLayout",
    "LIST_CHUNK_SIZE",
    "PARTITION_SIZE",
    # Protocol
    "RGB",
    "CommandFrame",
    "DirectReply",
    "FrameHeader",
    "SystemReply",
    "ToneEvent",
    "decode_command",
    "decode_header",
    "decode_reply_fields",
    "encode_direct",
    "encode_system",
    "parse_direct",
    "parse_system",
    # Transport
    "SessionState",
    "Transport",
    "connect",
    # Transfer
    "ALLOWED_UPLOAD_ROOTS",
    "FileTransfer",
    "UploadTransfer",
    # Brick
    "Brick",
    # Errors
    "EV3Error",
    "EncodingError",
    "TransportError",
    "ConnectionError",
    "IOError",
    "TimeoutError",
    "ProtocolError",
    "DeviceError",
    "TransferError",
]
