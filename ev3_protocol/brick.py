# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
High level brick API.

Wraps a ``Transport`` and exposes one method per catalog operation,
returning typed values instead of raw replies.
"""

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .bytecodes import ColourIndex
from .catalog import CATALOG
from .errors import ProtocolError
from .protocol import (
    RGB,
    decode_reply_fields,
    encode_all_stop,
    encode_draw_image,
    encode_drive,
    encode_get_type_mode,
    encode_motor_start,
    encode_motor_stop,
    encode_play_sound_file,
    encode_read_colour,
    encode_read_colour_rgb,
    encode_read_gyro,
    encode_read_touch,
    encode_read_ultrasonic,
    encode_restore_display,
    encode_set_brick_name,
    encode_set_led,
    encode_store_display,
    encode_timed_motor_start,
    encode_timed_motor_start_wait,
    encode_tone_sequence,
    encode_turn,
    parse_direct,
    tone_events,
)
from .transfer import FileTransfer, UploadTransfer
from .transport import Transport


class Brick:
    """
    EV3 brick connected over one ``Transport``.

    Can be used as a context manager:
        with Brick.open("00:16:53:12:34:56") as brick:
            brick.set_led_colour(LedColour.GREEN)
            print(brick.read_colour_sensor(PORT_3))
    """

    def __init__(self, transport: Transport):
        self._transport = transport
        self.files = FileTransfer(transport)

    @classmethod
    def open(cls, address: str, **kwargs) -> "Brick":
        """Connect to a brick; keyword arguments are passed to ``Transport``."""
        return cls(Transport(address, **kwargs))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self):
        self._transport.close()

    @property
    def transport(self) -> Transport:
        return self._transport

    def _direct(self, encode, *args, timeout: Optional[float] = None) -> bytes:
        """Send a direct command and return the reply payload."""
        sequence_id, reply = self._transport.exchange(encode, *args, timeout=timeout)
        if reply is None:
            return b""
        try:
            return parse_direct(reply, sequence_id).payload
        except ProtocolError as e:
            self._transport.fail(e)
            raise

    def _read(self, name: str, encode, port: int) -> Dict[str, int]:
        return decode_reply_fields(CATALOG[name], self._direct(encode, port))

    # Motors

    def motor_start(self, ports: int, power: int):
        """
        Start one or more motors.

        Args:
            ports: Port bitmask (MOTOR_A | MOTOR_B ...)
            power: Power in [-100, 100]
        """
        self._direct(encode_motor_start, ports, power)

    def motor_stop(self, ports: int, brake: int = 0):
        self._direct(encode_motor_stop, ports, brake)

    def all_stop(self, brake: int = 0):
        """Stop all four motors."""
        self._direct(encode_all_stop, brake)

    def drive(self, left_port: int, right_port: int, power: int):
        self._direct(encode_drive, left_port, right_port, power)

    def turn(self, left_port: int, left_power: int, right_port: int, right_power: int):
        self._direct(encode_turn, left_port, left_power, right_port, right_power)

    def timed_motor_start(
        self,
        port: int,
        power: int,
        ramp_up: int,
        run: int,
        ramp_down: int,
        brake: int = 0,
    ):
        """Start a ramp up / run / ramp down profile; returns immediately."""
        self._direct(encode_timed_motor_start, port, power, ramp_up, run, ramp_down, brake)

    def timed_motor_start_wait(self, port: int, power: int, time: int, brake: int = 0):
        """
        Run a motor for ``time`` milliseconds and return when it has stopped.

        The brick holds the reply until its timer expires, so the read
        timeout is extended by the run time.
        """
        timeout = self._transport.timeout + time / 1000
        self._direct(encode_timed_motor_start_wait, port, power, time, brake, timeout=timeout)

    # Sound

    def play_tone_sequence(self, tones: Iterable[Sequence[int]], wait: bool = True):
        """
        Play up to 50 (frequency, duration, volume) tones.

        A (-1, -1, -1) entry ends the sequence early.

        Args:
            tones: Iterable of (frequency Hz, duration ms, volume 0-63)
            wait: Block until the last tone has been played
        """
        events = tone_events(tones)
        if not wait:
            self._direct(encode_tone_sequence, events, False)
            return
        timeout = self._transport.timeout + sum(e.duration for e in events) / 1000
        self._direct(encode_tone_sequence, events, timeout=timeout)

    def play_sound_file(self, path: str, volume: int):
        """Play an .rsf file (path without extension) at volume 0-100."""
        self._direct(encode_play_sound_file, path, volume)

    # Sensors

    def read_touch_sensor(self, port: int) -> bool:
        return self._read("read_touch", encode_read_touch, port)["pressed"] != 0

    def read_colour_sensor(self, port: int) -> ColourIndex:
        """
        Read the colour sensor in indexed colour mode.

        Raises:
            ProtocolError: If the brick reports an index outside 0-7
        """
        value = self._read("read_colour", encode_read_colour, port)["colour"]
        try:
            return ColourIndex(value)
        except ValueError:
            raise ProtocolError(f"Colour index out of range: {value}") from None

    def read_colour_sensor_rgb(self, port: int) -> RGB:
        fields = self._read("read_colour_rgb", encode_read_colour_rgb, port)
        return RGB(fields["red"], fields["green"], fields["blue"])

    def read_ultrasonic_sensor(self, port: int) -> int:
        return self._read("read_ultrasonic", encode_read_ultrasonic, port)["distance"]

    def read_gyro_sensor(self, port: int) -> int:
        """Return the gyro angle in degrees."""
        return self._read("read_gyro", encode_read_gyro, port)["angle"]

    def get_type_mode(self, port: int) -> Tuple[int, int]:
        """Return the (device type, mode) attached to an input port."""
        fields = self._read("get_type_mode", encode_get_type_mode, port)
        return fields["type"], fields["mode"]

    # Display, LED and settings

    def set_led_colour(self, colour: int):
        self._direct(encode_set_led, colour)

    def draw_image_from_file(self, colour: int, x: int, y: int, path: str):
        self._direct(encode_draw_image, colour, x, y, path)

    def store_display(self, slot: int):
        self._direct(encode_store_display, slot)

    def restore_display(self, slot: int):
        self._direct(encode_restore_display, slot)

    def set_brick_name(self, name: str):
        self._direct(encode_set_brick_name, name)

    # Files

    def list_directory(self, path: str) -> List[str]:
        return self.files.list_directory(path)

    def upload(
        self,
        destination: str,
        data: bytes,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> UploadTransfer:
        return self.files.upload(destination, data, progress_callback)

    def upload_file(
        self,
        destination: str,
        path: Union[str, Path],
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> UploadTransfer:
        return self.files.upload_file(destination, path, progress_callback)
