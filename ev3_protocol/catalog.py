# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Device command catalog.

Static per-operation layout data: opcode, memory header sizes, operand
limits and the shape of the reply payload. The encoder validates operands
against these entries and the reply parser decodes payloads from them, so
neither needs per-command offset arithmetic.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .bytecodes import (
    ComSetCommand,
    DataFormat,
    InputDeviceCommand,
    LedColour,
    MessageType,
    Opcode,
    SensorType,
    SoundCommand,
    SystemCommand,
    UiDrawCommand,
    UiWriteCommand,
)
from .errors import EncodingError


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Range:
    """Inclusive integer range."""
    low: int
    high: int

    def check(self, name: str, value: int) -> int:
        if not _is_int(value) or not self.low <= value <= self.high:
            raise EncodingError(name, value, str(self))
        return value

    def __str__(self) -> str:
        return f"[{self.low}, {self.high}]"


@dataclass(frozen=True)
class OneOf:
    """Value from an enumerated set."""
    choices: Tuple[int, ...]

    def check(self, name: str, value: int) -> int:
        if not _is_int(value) or value not in self.choices:
            raise EncodingError(name, value, str(self))
        return value

    def __str__(self) -> str:
        return "one of {" + ", ".join(str(int(c)) for c in self.choices) + "}"


@dataclass(frozen=True)
class MaxLength:
    """
    Length-limited byte string.

    Text values are encoded as ASCII and may not contain NUL, since they are
    sent NUL-terminated. Raw data (``text=False``) is only length checked.
    """
    limit: int
    text: bool = True

    def check(self, name: str, value: Union[str, bytes]) -> bytes:
        if isinstance(value, str):
            try:
                value = value.encode("ascii")
            except UnicodeEncodeError:
                raise EncodingError(name, value, "ASCII text") from None
        if not isinstance(value, (bytes, bytearray)):
            raise EncodingError(name, value, str(self))
        if self.text and b"\x00" in value:
            raise EncodingError(name, value, "text without NUL")
        if len(value) > self.limit:
            raise EncodingError(name, value, str(self))
        return bytes(value)

    def __str__(self) -> str:
        return f"at most {self.limit} bytes"


Check = Union[Range, OneOf, MaxLength]


@dataclass(frozen=True)
class ReplyField:
    """One little-endian integer in a reply payload."""
    name: str
    size: int
    signed: bool = False


@dataclass(frozen=True)
class SensorMode:
    """Input device operands shared by the sensor reads."""
    sensor_type: int
    mode: int
    datasets: int = 1
    data_format: Optional[int] = None


@dataclass(frozen=True)
class CommandLayout:
    """Catalog entry describing one operation."""
    name: str
    opcode: int
    subcode: Optional[int] = None
    message_type: MessageType = MessageType.DIRECT_COMMAND_REPLY
    local_size: int = 0
    global_size: int = 0
    operands: Mapping[str, Check] = field(default_factory=dict)
    reply: Tuple[ReplyField, ...] = ()
    sensor: Optional[SensorMode] = None

    @property
    def reply_size(self) -> int:
        return sum(f.size for f in self.reply)

    def check(self, **values: Any) -> Dict[str, Any]:
        """
        Validate operands against this layout.

        Returns:
            Validated values (text operands converted to bytes)

        Raises:
            EncodingError: On the first operand outside its limits
        """
        return {
            name: self.operands[name].check(name, value)
            for name, value in values.items()
        }


# Operand limits
POWER = Range(-100, 100)
PORTS = Range(0, 0x0F)
PORT = Range(0, 8)
BRAKE = OneOf((0, 1))
TIMER = Range(0, 32767)
TONE_FREQUENCY = Range(20, 20000)
TONE_DURATION = Range(1, 5000)
TONE_VOLUME = Range(0, 63)
SOUND_VOLUME = Range(0, 100)
LED_COLOUR = OneOf(tuple(LedColour))
IMAGE_X = Range(0, 177)
IMAGE_Y = Range(0, 127)
IMAGE_COLOUR = OneOf((0, 1))
DISPLAY_SLOT = Range(0, 31)
BRICK_NAME = MaxLength(12)
PATH = MaxLength(1011)
IMAGE_PATH = MaxLength(1004)
FILE_SIZE = Range(0, 0xFFFFFFFF)
HANDLE = Range(0, 0xFF)
LIST_WINDOW = Range(1, 0xFFFF)

PARTITION_SIZE = 1017
LIST_CHUNK_SIZE = 1012
CHUNK = MaxLength(PARTITION_SIZE, text=False)

MAX_TONES = 50
TONE_SENTINEL = -1
TONE_EVENT_SIZE = 10

# Local memory reserved for the busy-wait timer variable (LV0(0))
TIMER_LOCAL_SIZE = 10

_MOTOR = {"ports": PORTS, "power": POWER}
_STOP = {"ports": PORTS, "brake": BRAKE}
_SENSOR = {"port": PORT}


def _sensor(name, subcode, sensor, fields, opcode=Opcode.INPUT_DEVICE):
    return CommandLayout(
        name=name,
        opcode=opcode,
        subcode=subcode,
        global_size=sum(f.size for f in fields),
        operands=_SENSOR,
        reply=fields,
        sensor=sensor,
    )


CATALOG: Dict[str, CommandLayout] = {
    layout.name: layout
    for layout in (
        CommandLayout("motor_start", Opcode.OUTPUT_POWER, operands=_MOTOR),
        CommandLayout("motor_stop", Opcode.OUTPUT_STOP, operands=_STOP),
        CommandLayout("all_stop", Opcode.OUTPUT_STOP, operands=_STOP),
        CommandLayout("drive", Opcode.OUTPUT_POWER, operands={
            "left_port": PORT, "right_port": PORT, "power": POWER,
        }),
        CommandLayout("turn", Opcode.OUTPUT_POWER, operands={
            "left_port": PORT, "left_power": POWER,
            "right_port": PORT, "right_power": POWER,
        }),
        CommandLayout("timed_motor_start", Opcode.OUTPUT_TIME_POWER, operands={
            "port": PORT, "power": POWER, "ramp_up": TIMER,
            "run": TIMER, "ramp_down": TIMER, "brake": BRAKE,
        }),
        CommandLayout(
            "timed_motor_start_wait", Opcode.OUTPUT_POWER,
            local_size=TIMER_LOCAL_SIZE,
            operands={"port": PORT, "power": POWER, "time": TIMER, "brake": BRAKE},
        ),
        CommandLayout("tone_sequence", Opcode.SOUND, SoundCommand.TONE, operands={
            "frequency": TONE_FREQUENCY, "duration": TONE_DURATION,
            "volume": TONE_VOLUME,
        }),
        _sensor(
            "read_touch", InputDeviceCommand.READY_PCT,
            SensorMode(SensorType.TOUCH, 0),
            (ReplyField("pressed", 1),),
        ),
        _sensor(
            "read_colour", InputDeviceCommand.READY_RAW,
            SensorMode(SensorType.COLOUR, 2),
            (ReplyField("colour", 1),),
        ),
        _sensor(
            "read_colour_rgb", InputDeviceCommand.READY_RAW,
            SensorMode(SensorType.COLOUR, 4, datasets=3),
            (ReplyField("red", 4), ReplyField("green", 4), ReplyField("blue", 4)),
        ),
        _sensor(
            "read_ultrasonic", InputDeviceCommand.READY_RAW,
            SensorMode(SensorType.ULTRASONIC, 0),
            (ReplyField("distance", 1),),
        ),
        # Type 0 and mode -1 leave the device's current type/mode untouched.
        _sensor(
            "read_gyro", None,
            SensorMode(0, -1, data_format=DataFormat.DATA_RAW),
            (ReplyField("angle", 4, signed=True),),
            opcode=Opcode.INPUT_READEXT,
        ),
        _sensor(
            "get_type_mode", InputDeviceCommand.GET_TYPEMODE, None,
            (ReplyField("type", 1), ReplyField("mode", 1)),
        ),
        CommandLayout("play_sound_file", Opcode.SOUND, SoundCommand.PLAY, operands={
            "path": PATH, "volume": SOUND_VOLUME,
        }),
        CommandLayout("set_led", Opcode.UI_WRITE, UiWriteCommand.LED, operands={
            "colour": LED_COLOUR,
        }),
        CommandLayout("draw_image", Opcode.UI_DRAW, UiDrawCommand.BMPFILE, operands={
            "colour": IMAGE_COLOUR, "x": IMAGE_X, "y": IMAGE_Y, "path": IMAGE_PATH,
        }),
        CommandLayout("store_display", Opcode.UI_DRAW, UiDrawCommand.STORE, operands={
            "slot": DISPLAY_SLOT,
        }),
        CommandLayout("restore_display", Opcode.UI_DRAW, UiDrawCommand.RESTORE, operands={
            "slot": DISPLAY_SLOT,
        }),
        CommandLayout("set_brick_name", Opcode.COM_SET, ComSetCommand.SET_BRICKNAME, operands={
            "name": BRICK_NAME,
        }),
        CommandLayout(
            "list_files", SystemCommand.LIST_FILES,
            message_type=MessageType.SYSTEM_COMMAND_REPLY,
            operands={"path": PATH, "max_bytes": LIST_WINDOW},
            reply=(ReplyField("list_size", 4), ReplyField("handle", 1)),
        ),
        CommandLayout(
            "continue_list_files", SystemCommand.CONTINUE_LIST_FILES,
            message_type=MessageType.SYSTEM_COMMAND_REPLY,
            operands={"handle": HANDLE, "max_bytes": LIST_WINDOW},
            reply=(ReplyField("handle", 1),),
        ),
        CommandLayout(
            "begin_download", SystemCommand.BEGIN_DOWNLOAD,
            message_type=MessageType.SYSTEM_COMMAND_REPLY,
            operands={"size": FILE_SIZE, "path": PATH},
            reply=(ReplyField("handle", 1),),
        ),
        CommandLayout(
            "continue_download", SystemCommand.CONTINUE_DOWNLOAD,
            message_type=MessageType.SYSTEM_COMMAND_REPLY,
            operands={"handle": HANDLE, "data": CHUNK},
            reply=(ReplyField("handle", 1),),
        ),
    )
}
