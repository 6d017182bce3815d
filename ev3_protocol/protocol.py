# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
EV3 command frame encoding and reply parsing.

Request frame layout (all multi-byte fields little endian):

    +--------+----------+------+----------------+---------------------+
    | len-2  | sequence | type | memory header  | opcode + operands   |
    | 2 B    | 2 B      | 1 B  | 2 B (direct)   | variable            |
    +--------+----------+------+----------------+---------------------+

System commands replace the memory header and opcode with a single system
opcode byte followed by a raw payload.

Reply frame layout:

    | len-2 (2 B) | sequence (2 B) | reply type (1 B) | payload ... |

System replies carry the echoed system opcode at offset 5 and a status
code at offset 6; the command specific payload starts at offset 7.
"""

import struct
from dataclasses import dataclass
from itertools import islice
from typing import Dict, Iterable, NamedTuple, Optional, Sequence, Union

from .bytecodes import (
    ALL_MOTORS,
    MessageType,
    Opcode,
    ReplyType,
    SystemCommand,
    SystemStatus,
    UiDrawCommand,
)
from .catalog import (
    CATALOG,
    LIST_CHUNK_SIZE,
    MAX_TONES,
    TONE_SENTINEL,
    CommandLayout,
)
from .errors import DeviceError, EncodingError, ProtocolError
from .operands import gv0, lc0, lc1, lc2, lcs, lv0

# length + sequence id + type
HEADER_SIZE = 5
SYSTEM_REPLY_HEADER_SIZE = 7
MAX_LOCAL_SIZE = 63
MAX_GLOBAL_SIZE = 1023

_HEADER = struct.Struct("<HHB")


@dataclass
class FrameHeader:
    """Fixed 5-byte prefix shared by requests and replies."""
    length: int
    sequence_id: int
    message_type: int


@dataclass
class CommandFrame:
    """A decoded request frame."""
    length: int
    sequence_id: int
    message_type: MessageType
    opcode: int
    body: bytes
    local_size: int = 0
    global_size: int = 0


class ToneEvent(NamedTuple):
    """One note of a tone sequence."""
    frequency: int
    duration: int
    volume: int


class RGB(NamedTuple):
    red: int
    green: int
    blue: int


@dataclass
class DirectReply:
    """Successful reply to a direct command."""
    sequence_id: int
    payload: bytes
    type: int = ReplyType.DIRECT_REPLY


@dataclass
class SystemReply:
    """Reply to a system command."""
    sequence_id: int
    command: int
    status: Union[SystemStatus, int]
    payload: bytes
    type: int = ReplyType.SYSTEM_REPLY

    @property
    def is_ok(self) -> bool:
        return self.status == SystemStatus.SUCCESS

    @property
    def is_end_of_file(self) -> bool:
        return self.status == SystemStatus.END_OF_FILE


# Type alias for any reply
Reply = Union[DirectReply, SystemReply]


def _check_sequence(sequence_id: int) -> None:
    if not isinstance(sequence_id, int) or not 0 <= sequence_id <= 0xFFFF:
        raise EncodingError("sequence_id", sequence_id, "[0, 65535]")


def _frame(sequence_id: int, message_type: MessageType, data: bytes) -> bytes:
    """Prefix data with the length, sequence id and message type."""
    _check_sequence(sequence_id)
    length = 3 + len(data)
    if length > 0xFFFF:
        raise EncodingError("frame length", length, "[0, 65535]")
    return _HEADER.pack(length, sequence_id, message_type) + data


def encode_direct(
    sequence_id: int,
    body: bytes,
    local_size: int = 0,
    global_size: int = 0,
    expect_reply: bool = True,
) -> bytes:
    """
    Encode a direct command frame.

    Args:
        sequence_id: Message counter assigned by the session
        body: Opcode(s) and operands
        local_size: Local variable memory in bytes (0-63)
        global_size: Global variable (reply) memory in bytes (0-1023)
        expect_reply: Request a reply from the brick

    Returns:
        Complete frame, exactly sized
    """
    if not 0 <= local_size <= MAX_LOCAL_SIZE:
        raise EncodingError("local_size", local_size, f"[0, {MAX_LOCAL_SIZE}]")
    if not 0 <= global_size <= MAX_GLOBAL_SIZE:
        raise EncodingError("global_size", global_size, f"[0, {MAX_GLOBAL_SIZE}]")

    message_type = (
        MessageType.DIRECT_COMMAND_REPLY if expect_reply
        else MessageType.DIRECT_COMMAND_NO_REPLY
    )
    header = bytes([global_size & 0xFF, (local_size << 2) | (global_size >> 8)])
    return _frame(sequence_id, message_type, header + bytes(body))


def encode_system(
    sequence_id: int,
    command: int,
    payload: bytes = b"",
    expect_reply: bool = True,
) -> bytes:
    """Encode a system command frame."""
    message_type = (
        MessageType.SYSTEM_COMMAND_REPLY if expect_reply
        else MessageType.SYSTEM_COMMAND_NO_REPLY
    )
    return _frame(sequence_id, message_type, bytes([command]) + bytes(payload))


def decode_header(data: bytes) -> FrameHeader:
    """
    Decode the fixed prefix of a request or reply.

    Raises:
        ProtocolError: If fewer than 5 bytes are given
    """
    if len(data) < HEADER_SIZE:
        raise ProtocolError(f"Truncated frame: {len(data)} bytes")
    length, sequence_id, message_type = _HEADER.unpack_from(data)
    return FrameHeader(length, sequence_id, message_type)


def decode_command(frame: bytes) -> CommandFrame:
    """Decode a request frame produced by one of the ``encode_*`` functions."""
    header = decode_header(frame)
    if header.length != len(frame) - 2:
        raise ProtocolError(
            f"Frame length mismatch: header says {header.length}, "
            f"got {len(frame) - 2}"
        )
    try:
        message_type = MessageType(header.message_type)
    except ValueError:
        raise ProtocolError(
            f"Unknown message type: 0x{header.message_type:02X}") from None

    if message_type.is_system:
        if len(frame) < HEADER_SIZE + 1:
            raise ProtocolError("Truncated system command")
        return CommandFrame(
            length=header.length,
            sequence_id=header.sequence_id,
            message_type=message_type,
            opcode=frame[5],
            body=bytes(frame[6:]),
        )

    if len(frame) < HEADER_SIZE + 2:
        raise ProtocolError("Truncated direct command")
    global_size = frame[5] | ((frame[6] & 0x03) << 8)
    local_size = frame[6] >> 2
    return CommandFrame(
        length=header.length,
        sequence_id=header.sequence_id,
        message_type=message_type,
        opcode=frame[7] if len(frame) > 7 else 0,
        body=bytes(frame[8:]),
        local_size=local_size,
        global_size=global_size,
    )


# Direct command builders

def _direct(sequence_id: int, layout: CommandLayout, body: bytes,
            expect_reply: bool = True) -> bytes:
    return encode_direct(
        sequence_id, body, layout.local_size, layout.global_size, expect_reply)


def _output_power(ports: int, power: int) -> bytes:
    return bytes([Opcode.OUTPUT_POWER]) + lc0(0) + lc0(ports) + lc1(power)


def _output_start(ports: int) -> bytes:
    return bytes([Opcode.OUTPUT_START]) + lc0(0) + lc0(ports)


def _output_stop(ports: int, brake: int) -> bytes:
    return bytes([Opcode.OUTPUT_STOP]) + lc0(0) + lc0(ports) + lc0(brake)


def encode_motor_start(sequence_id: int, ports: int, power: int) -> bytes:
    """
    Set power on one or more output ports and start them.

    Args:
        sequence_id: Message counter
        ports: Port bitmask (MOTOR_A | MOTOR_B ...)
        power: Power in [-100, 100], sign selects direction
    """
    layout = CATALOG["motor_start"]
    v = layout.check(ports=ports, power=power)
    body = _output_power(v["ports"], v["power"]) + _output_start(v["ports"])
    return _direct(sequence_id, layout, body)


def encode_motor_stop(sequence_id: int, ports: int, brake: int = 0) -> bytes:
    """Stop output ports; brake 0 coasts, 1 actively brakes."""
    layout = CATALOG["motor_stop"]
    v = layout.check(ports=ports, brake=brake)
    return _direct(sequence_id, layout, _output_stop(v["ports"], v["brake"]))


def encode_all_stop(sequence_id: int, brake: int = 0) -> bytes:
    layout = CATALOG["all_stop"]
    v = layout.check(ports=ALL_MOTORS, brake=brake)
    return _direct(sequence_id, layout, _output_stop(v["ports"], v["brake"]))


def encode_drive(sequence_id: int, left_port: int, right_port: int, power: int) -> bytes:
    """Drive two ports at the same power."""
    layout = CATALOG["drive"]
    v = layout.check(left_port=left_port, right_port=right_port, power=power)
    ports = v["left_port"] | v["right_port"]
    body = _output_power(ports, v["power"]) + _output_start(ports)
    return _direct(sequence_id, layout, body)


def encode_turn(
    sequence_id: int,
    left_port: int,
    left_power: int,
    right_port: int,
    right_power: int,
) -> bytes:
    """Drive two ports at independent powers."""
    layout = CATALOG["turn"]
    v = layout.check(
        left_port=left_port, left_power=left_power,
        right_port=right_port, right_power=right_power,
    )
    body = (
        _output_power(v["left_port"], v["left_power"])
        + _output_power(v["right_port"], v["right_power"])
        + _output_start(v["left_port"] | v["right_port"])
    )
    return _direct(sequence_id, layout, body)


def encode_timed_motor_start(
    sequence_id: int,
    port: int,
    power: int,
    ramp_up: int,
    run: int,
    ramp_down: int,
    brake: int = 0,
) -> bytes:
    """
    Run a port with a ramp up / constant / ramp down power profile.

    The brick schedules the profile itself and replies immediately.
    All times are in milliseconds.
    """
    layout = CATALOG["timed_motor_start"]
    v = layout.check(
        port=port, power=power, ramp_up=ramp_up, run=run,
        ramp_down=ramp_down, brake=brake,
    )
    body = (
        bytes([Opcode.OUTPUT_TIME_POWER]) + lc0(0) + lc0(v["port"])
        + lc1(v["power"])
        + lc2(v["ramp_up"]) + lc2(v["run"]) + lc2(v["ramp_down"])
        + lc0(v["brake"])
    )
    return _direct(sequence_id, layout, body)


def encode_timed_motor_start_wait(
    sequence_id: int,
    port: int,
    power: int,
    time: int,
    brake: int = 0,
) -> bytes:
    """
    Run a port for a fixed time, blocking on the brick.

    The frame starts the motor, waits on a brick timer held in local
    variable 0 and stops the motor, so the reply only arrives once the run
    is over.
    """
    layout = CATALOG["timed_motor_start_wait"]
    v = layout.check(port=port, power=power, time=time, brake=brake)
    body = (
        _output_power(v["port"], v["power"])
        + _output_start(v["port"])
        + bytes([Opcode.TIMER_WAIT]) + lc2(v["time"]) + lv0(0)
        + bytes([Opcode.TIMER_READY]) + lv0(0)
        + _output_stop(v["port"], v["brake"])
    )
    return _direct(sequence_id, layout, body)


def tone_events(tones: Iterable[Sequence[int]]) -> list:
    """
    Validate a tone sequence.

    Stops at the first event whose frequency or duration is -1, or after
    50 events.

    Returns:
        List of ToneEvent
    """
    layout = CATALOG["tone_sequence"]
    events = []
    for frequency, duration, volume in islice(tones, MAX_TONES):
        if frequency == TONE_SENTINEL or duration == TONE_SENTINEL:
            break
        v = layout.check(frequency=frequency, duration=duration, volume=volume)
        events.append(ToneEvent(v["frequency"], v["duration"], v["volume"]))
    return events


def encode_tone_sequence(
    sequence_id: int,
    tones: Iterable[Sequence[int]],
    expect_reply: bool = True,
) -> bytes:
    """
    Play a sequence of tones, each waiting for the previous one to end.

    Every event costs 10 bytes: SOUND TONE <volume> LC2(freq) LC2(dur)
    SOUND_READY. The volume travels as a single raw byte.
    """
    layout = CATALOG["tone_sequence"]
    body = b"".join(
        bytes([Opcode.SOUND, layout.subcode, event.volume])
        + lc2(event.frequency)
        + lc2(event.duration)
        + bytes([Opcode.SOUND_READY])
        for event in tone_events(tones)
    )
    return _direct(sequence_id, layout, body, expect_reply)


def _sensor_read(sequence_id: int, name: str, port: int) -> bytes:
    layout = CATALOG[name]
    port = layout.check(port=port)["port"]

    variables = b""
    offset = 0
    for reply_field in layout.reply:
        variables += gv0(offset)
        offset += reply_field.size

    sensor = layout.sensor
    if layout.opcode == Opcode.INPUT_READEXT:
        body = (
            bytes([layout.opcode]) + lc0(0) + lc0(port)
            + lc0(sensor.sensor_type) + lc0(sensor.mode)
            + lc0(sensor.data_format) + lc0(sensor.datasets)
        )
    elif sensor is None:
        body = bytes([layout.opcode, layout.subcode]) + lc0(0) + lc0(port)
    else:
        body = (
            bytes([layout.opcode, layout.subcode]) + lc0(0) + lc0(port)
            + lc0(sensor.sensor_type) + lc0(sensor.mode) + lc0(sensor.datasets)
        )
    return _direct(sequence_id, layout, body + variables)


def encode_read_touch(sequence_id: int, port: int) -> bytes:
    return _sensor_read(sequence_id, "read_touch", port)


def encode_read_colour(sequence_id: int, port: int) -> bytes:
    return _sensor_read(sequence_id, "read_colour", port)


def encode_read_colour_rgb(sequence_id: int, port: int) -> bytes:
    return _sensor_read(sequence_id, "read_colour_rgb", port)


def encode_read_ultrasonic(sequence_id: int, port: int) -> bytes:
    return _sensor_read(sequence_id, "read_ultrasonic", port)


def encode_read_gyro(sequence_id: int, port: int) -> bytes:
    return _sensor_read(sequence_id, "read_gyro", port)


def encode_get_type_mode(sequence_id: int, port: int) -> bytes:
    return _sensor_read(sequence_id, "get_type_mode", port)


def encode_play_sound_file(sequence_id: int, path: str, volume: int) -> bytes:
    """Play an .rsf file; path is given without its extension."""
    layout = CATALOG["play_sound_file"]
    v = layout.check(path=path, volume=volume)
    body = (
        bytes([layout.opcode, layout.subcode])
        + lc1(v["volume"]) + lcs(v["path"])
    )
    return _direct(sequence_id, layout, body)


def encode_set_led(sequence_id: int, colour: int) -> bytes:
    layout = CATALOG["set_led"]
    v = layout.check(colour=colour)
    body = bytes([layout.opcode, layout.subcode]) + lc0(v["colour"])
    return _direct(sequence_id, layout, body)


def encode_draw_image(sequence_id: int, colour: int, x: int, y: int, path: str) -> bytes:
    """
    Draw an .rgf image with its top left corner at (x, y) and refresh
    the display.

    Args:
        sequence_id: Message counter
        colour: 0 = white, 1 = black
        x: Left edge in [0, 177]
        y: Top edge in [0, 127]
        path: File path without extension
    """
    layout = CATALOG["draw_image"]
    v = layout.check(colour=colour, x=x, y=y, path=path)
    body = (
        bytes([layout.opcode, layout.subcode])
        + lc1(v["colour"]) + lc2(v["x"]) + lc2(v["y"]) + lcs(v["path"])
        + bytes([Opcode.UI_DRAW, UiDrawCommand.UPDATE])
    )
    return _direct(sequence_id, layout, body)


def encode_store_display(sequence_id: int, slot: int) -> bytes:
    layout = CATALOG["store_display"]
    v = layout.check(slot=slot)
    body = bytes([layout.opcode, layout.subcode]) + lc0(v["slot"])
    return _direct(sequence_id, layout, body)


def encode_restore_display(sequence_id: int, slot: int) -> bytes:
    layout = CATALOG["restore_display"]
    v = layout.check(slot=slot)
    body = (
        bytes([layout.opcode, layout.subcode]) + lc0(v["slot"])
        + bytes([Opcode.UI_DRAW, UiDrawCommand.UPDATE])
    )
    return _direct(sequence_id, layout, body)


def encode_set_brick_name(sequence_id: int, name: str) -> bytes:
    """Rename the brick (at most 12 characters)."""
    layout = CATALOG["set_brick_name"]
    v = layout.check(name=name)
    body = bytes([layout.opcode, layout.subcode]) + lcs(v["name"])
    return _direct(sequence_id, layout, body)


# System command builders

def encode_list_files(sequence_id: int, path: str,
                      max_bytes: int = LIST_CHUNK_SIZE) -> bytes:
    """Encode a LIST_FILES request for the first chunk of a listing."""
    layout = CATALOG["list_files"]
    v = layout.check(path=path, max_bytes=max_bytes)
    payload = v["max_bytes"].to_bytes(2, "little") + v["path"] + b"\x00"
    return encode_system(sequence_id, layout.opcode, payload)


def encode_continue_list_files(sequence_id: int, handle: int,
                               max_bytes: int = LIST_CHUNK_SIZE) -> bytes:
    layout = CATALOG["continue_list_files"]
    v = layout.check(handle=handle, max_bytes=max_bytes)
    payload = bytes([v["handle"]]) + v["max_bytes"].to_bytes(2, "little")
    return encode_system(sequence_id, layout.opcode, payload)


def encode_begin_download(sequence_id: int, size: int, path: str) -> bytes:
    """Encode a BEGIN_DOWNLOAD request announcing a file of ``size`` bytes."""
    layout = CATALOG["begin_download"]
    v = layout.check(size=size, path=path)
    payload = v["size"].to_bytes(4, "little") + v["path"] + b"\x00"
    return encode_system(sequence_id, layout.opcode, payload)


def encode_continue_download(sequence_id: int, handle: int, data: bytes) -> bytes:
    """Encode one CONTINUE_DOWNLOAD chunk (at most 1017 bytes)."""
    layout = CATALOG["continue_download"]
    v = layout.check(handle=handle, data=data)
    return encode_system(sequence_id, layout.opcode, bytes([v["handle"]]) + v["data"])


# Reply parsing

def _status(value: int) -> Union[SystemStatus, int]:
    try:
        return SystemStatus(value)
    except ValueError:
        return value


def _check_reply(data: bytes, sequence_id: Optional[int]) -> FrameHeader:
    header = decode_header(data)
    if header.length != len(data) - 2:
        raise ProtocolError(
            f"Reply length mismatch: header says {header.length}, "
            f"got {len(data) - 2}"
        )
    if sequence_id is not None and header.sequence_id != sequence_id:
        raise ProtocolError(
            f"Sequence id mismatch: sent {sequence_id}, "
            f"reply carries {header.sequence_id}"
        )
    return header


def parse_direct(data: bytes, sequence_id: Optional[int] = None) -> DirectReply:
    """
    Parse a reply to a direct command.

    Args:
        data: Complete reply frame
        sequence_id: Sequence id of the request, checked when given

    Returns:
        DirectReply with the global memory contents as payload

    Raises:
        DeviceError: If the brick reported DIRECT_REPLY_ERROR
        ProtocolError: If the reply is malformed or not a direct reply
    """
    header = _check_reply(data, sequence_id)

    if header.message_type == ReplyType.DIRECT_REPLY:
        return DirectReply(
            sequence_id=header.sequence_id,
            payload=bytes(data[HEADER_SIZE:]),
        )
    if header.message_type == ReplyType.DIRECT_REPLY_ERROR:
        raise DeviceError(
            f"Direct command {header.sequence_id} failed",
            status=header.message_type,
        )
    raise ProtocolError(
        f"Expected direct reply, got type 0x{header.message_type:02X}")


def parse_system(
    data: bytes,
    sequence_id: Optional[int] = None,
    command: Optional[int] = None,
) -> SystemReply:
    """
    Parse a reply to a system command.

    Args:
        data: Complete reply frame
        sequence_id: Sequence id of the request, checked when given
        command: System opcode of the request, checked when given

    Returns:
        SystemReply; its status may be SUCCESS, END_OF_FILE or any other
        code the brick sent with a SYSTEM_REPLY

    Raises:
        DeviceError: If the brick reported SYSTEM_REPLY_ERROR
        ProtocolError: If the reply is malformed or not a system reply
    """
    header = _check_reply(data, sequence_id)

    if header.message_type not in (ReplyType.SYSTEM_REPLY, ReplyType.SYSTEM_REPLY_ERROR):
        raise ProtocolError(
            f"Expected system reply, got type 0x{header.message_type:02X}")
    if len(data) < SYSTEM_REPLY_HEADER_SIZE:
        raise ProtocolError("Truncated system reply")

    echoed = data[5]
    status = _status(data[6])
    if command is not None and echoed != command:
        raise ProtocolError(
            f"Reply to 0x{echoed:02X} received for command 0x{command:02X}")

    if header.message_type == ReplyType.SYSTEM_REPLY_ERROR:
        try:
            name = str(SystemCommand(echoed))
        except ValueError:
            name = f"0x{echoed:02X}"
        raise DeviceError(f"{name} failed: {status}", status=int(status))

    return SystemReply(
        sequence_id=header.sequence_id,
        command=echoed,
        status=status,
        payload=bytes(data[SYSTEM_REPLY_HEADER_SIZE:]),
    )


def decode_reply_fields(layout: CommandLayout, payload: bytes) -> Dict[str, int]:
    """
    Decode a reply payload using the catalog's reply shape.

    Raises:
        ProtocolError: If the payload is shorter than the layout requires
    """
    if len(payload) < layout.reply_size:
        raise ProtocolError(
            f"{layout.name} reply too short: expected {layout.reply_size} "
            f"bytes, got {len(payload)}"
        )
    values = {}
    offset = 0
    for reply_field in layout.reply:
        chunk = payload[offset:offset + reply_field.size]
        values[reply_field.name] = int.from_bytes(
            chunk, "little", signed=reply_field.signed)
        offset += reply_field.size
    return values
