# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
EV3 byte code tables.

Values match the LEGO EV3 firmware (``bytecodes.h`` / ``c_com.h`` from the
EV3 communication developer kit).
"""

from enum import IntEnum


class MessageType(IntEnum):
    """Command type byte (offset 4 of every request frame)."""
    DIRECT_COMMAND_REPLY = 0x00
    SYSTEM_COMMAND_REPLY = 0x01
    DIRECT_COMMAND_NO_REPLY = 0x80
    SYSTEM_COMMAND_NO_REPLY = 0x81

    @property
    def expects_reply(self) -> bool:
        return not self & 0x80

    @property
    def is_system(self) -> bool:
        return bool(self & 0x01)


class ReplyType(IntEnum):
    """Reply type byte (offset 4 of every reply frame)."""
    DIRECT_REPLY = 0x02
    SYSTEM_REPLY = 0x03
    DIRECT_REPLY_ERROR = 0x04
    SYSTEM_REPLY_ERROR = 0x05

    def __str__(self) -> str:
        return self.name


class Opcode(IntEnum):
    """Direct command opcodes used by this library."""
    UI_WRITE = 0x82
    UI_DRAW = 0x84
    TIMER_WAIT = 0x85
    TIMER_READY = 0x86
    SOUND = 0x94
    SOUND_READY = 0x96
    INPUT_DEVICE = 0x99
    INPUT_READEXT = 0x9E
    OUTPUT_STOP = 0xA3
    OUTPUT_POWER = 0xA4
    OUTPUT_START = 0xA6
    OUTPUT_TIME_POWER = 0xAD
    COM_SET = 0xD4


class SoundCommand(IntEnum):
    TONE = 0x01
    PLAY = 0x02


class UiWriteCommand(IntEnum):
    LED = 0x1B


class UiDrawCommand(IntEnum):
    UPDATE = 0x00
    STORE = 0x19
    RESTORE = 0x1A
    BMPFILE = 0x1C


class InputDeviceCommand(IntEnum):
    GET_TYPEMODE = 0x05
    READY_PCT = 0x1B
    READY_RAW = 0x1C


class ComSetCommand(IntEnum):
    SET_BRICKNAME = 0x08


class SystemCommand(IntEnum):
    """System command opcodes (offset 5 of a system frame)."""
    BEGIN_DOWNLOAD = 0x92
    CONTINUE_DOWNLOAD = 0x93
    LIST_FILES = 0x99
    CONTINUE_LIST_FILES = 0x9A

    def __str__(self) -> str:
        return self.name


class SystemStatus(IntEnum):
    """Status codes carried at offset 6 of a system reply."""
    SUCCESS = 0x00
    UNKNOWN_HANDLE = 0x01
    HANDLE_NOT_READY = 0x02
    CORRUPT_FILE = 0x03
    NO_HANDLES_AVAILABLE = 0x04
    NO_PERMISSION = 0x05
    ILLEGAL_PATH = 0x06
    FILE_EXISTS = 0x07
    END_OF_FILE = 0x08
    SIZE_ERROR = 0x09
    UNKNOWN_ERROR = 0x0A
    ILLEGAL_FILENAME = 0x0B
    ILLEGAL_CONNECTION = 0x0C

    def __str__(self) -> str:
        return self.name


class LedColour(IntEnum):
    """Brick button LED patterns."""
    BLACK = 0
    GREEN = 1
    RED = 2
    ORANGE = 3
    GREEN_FLASH = 4
    RED_FLASH = 5
    ORANGE_FLASH = 6
    GREEN_PULSE = 7
    RED_PULSE = 8
    ORANGE_PULSE = 9

    def __str__(self) -> str:
        return self.name


class ColourIndex(IntEnum):
    """Indexed colour reported by the colour sensor in COL-COLOR mode."""
    NONE = 0
    BLACK = 1
    BLUE = 2
    GREEN = 3
    YELLOW = 4
    RED = 5
    WHITE = 6
    BROWN = 7

    def __str__(self) -> str:
        return self.name


class SensorType(IntEnum):
    TOUCH = 16
    COLOUR = 29
    ULTRASONIC = 30
    GYRO = 32
    INFRARED = 33


class DataFormat(IntEnum):
    DATA_8 = 0x00
    DATA_16 = 0x01
    DATA_32 = 0x02
    DATA_F = 0x03
    DATA_PCT = 0x10
    DATA_RAW = 0x12
    DATA_SI = 0x13


# Output port bitmask values
MOTOR_A = 0x01
MOTOR_B = 0x02
MOTOR_C = 0x04
MOTOR_D = 0x08
ALL_MOTORS = MOTOR_A | MOTOR_B | MOTOR_C | MOTOR_D

# Input port numbers
PORT_1 = 0x00
PORT_2 = 0x01
PORT_3 = 0x02
PORT_4 = 0x03
