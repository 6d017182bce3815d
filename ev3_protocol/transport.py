# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Transport layer for EV3 brick communication.

One ``Transport`` owns one byte stream to the brick: either an RFCOMM
socket (when given a Bluetooth address) or a serial port bound to the
brick (``/dev/rfcomm0``, ``COM5``, a USB adapter...). Every request is a
blocking write followed by one blocking read of the length-prefixed reply.
"""

import logging
import re
import socket
import time
from enum import Enum
from typing import Callable, Optional, Tuple

import serial

from .errors import ConnectionError, IOError, TimeoutError, TransportError

logger = logging.getLogger(__name__)

RFCOMM_CHANNEL = 1
DEFAULT_TIMEOUT = 5.0
DEFAULT_BAUDRATE = 115200

_BLUETOOTH_ADDRESS = re.compile(r"^[0-9A-Fa-f]{2}(:[0-9A-Fa-f]{2}){5}$")

# Bit set in the message type of frames the brick does not answer
NO_REPLY_FLAG = 0x80


def is_bluetooth_address(address: str) -> bool:
    """Return True for a ``XX:XX:XX:XX:XX:XX`` MAC address."""
    return bool(_BLUETOOTH_ADDRESS.match(address))


class SessionState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    FAILED = "failed"


class RfcommStream:
    """
    Bluetooth RFCOMM socket with the subset of the ``serial.Serial``
    interface used by ``Transport``.
    """

    def __init__(self, address: str, channel: int = RFCOMM_CHANNEL,
                 timeout: Optional[float] = DEFAULT_TIMEOUT):
        sock = socket.socket(
            socket.AF_BLUETOOTH, socket.SOCK_STREAM, socket.BTPROTO_RFCOMM)
        sock.settimeout(timeout)
        try:
            sock.connect((address, channel))
        except OSError:
            sock.close()
            raise
        self._socket = sock
        self._address = address

    @property
    def port(self) -> str:
        return self._address

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    @property
    def timeout(self) -> Optional[float]:
        return self._socket.gettimeout()

    @timeout.setter
    def timeout(self, value: Optional[float]):
        self._socket.settimeout(value)

    def read(self, size: int = 1) -> bytes:
        """Read up to size bytes; returns b"" on timeout like pyserial."""
        try:
            return self._socket.recv(size)
        except socket.timeout:
            return b""

    def write(self, data: bytes) -> int:
        self._socket.sendall(data)
        return len(data)

    def flush(self):
        pass

    def close(self):
        if self._socket is not None:
            self._socket.close()
            self._socket = None


class Transport:
    """
    Synchronous request/reply session with an EV3 brick.

    The session owns the message counter: it starts at 1 and is incremented
    after every frame sent, whether the exchange succeeded or not. Any
    stream failure or malformed reply leaves the session FAILED; open a new
    one to continue.

    Can be used as a context manager:
        with Transport("00:16:53:12:34:56") as t:
            seq, reply = t.exchange(encode_set_led, LedColour.GREEN)
    """

    def __init__(
        self,
        address: str,
        channel: int = RFCOMM_CHANNEL,
        timeout: float = DEFAULT_TIMEOUT,
        baudrate: int = DEFAULT_BAUDRATE,
        stream=None,
    ):
        """
        Open a connection to the brick.

        Args:
            address: Bluetooth address or serial port path
            channel: RFCOMM channel (Bluetooth addresses only)
            timeout: Read timeout in seconds (default 5.0)
            baudrate: Baud rate (serial ports only)
            stream: Already open stream to use instead of opening one

        Raises:
            ConnectionError: If the stream cannot be opened
        """
        self._address = address
        self._timeout = timeout
        self._sequence_id = 1
        self._state = SessionState.CLOSED

        if stream is None:
            stream = self._open(address, channel, timeout, baudrate)
        self._stream = stream
        self._state = SessionState.OPEN
        logger.info("Connected to %s", address)

    @staticmethod
    def _open(address: str, channel: int, timeout: float, baudrate: int):
        if is_bluetooth_address(address):
            if not hasattr(socket, "AF_BLUETOOTH"):
                raise ConnectionError(
                    "RFCOMM sockets are not available on this platform; "
                    "use the serial port bound to the brick instead")
            try:
                return RfcommStream(address, channel, timeout)
            except OSError as e:
                raise ConnectionError(
                    f"Could not connect to {address} channel {channel}: {e}") from e

        try:
            ser = serial.Serial(address, baudrate, timeout=timeout)
        except (serial.SerialException, OSError) as e:
            raise ConnectionError(f"Could not open {address}: {e}") from e
        time.sleep(0.1)  # Let the link settle
        return ser

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self):
        """Close the stream. Safe to call more than once."""
        if self._stream is not None and self._stream.is_open:
            self._stream.close()
        if self._state is not SessionState.CLOSED:
            logger.info("Closed connection to %s", self._address)
        self._state = SessionState.CLOSED

    @property
    def port(self) -> str:
        """Return the address the session was opened on."""
        return self._address

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def sequence_id(self) -> int:
        """Sequence id the next frame will carry."""
        return self._sequence_id

    @property
    def timeout(self) -> float:
        return self._timeout

    def fail(self, error: Exception):
        """Mark the session failed. Later sends raise IOError until reconnected."""
        logger.warning("Session with %s failed: %s", self._address, error)
        self._state = SessionState.FAILED

    def _read_exact(self, size: int) -> bytes:
        data = bytearray()
        while len(data) < size:
            chunk = self._stream.read(size - len(data))
            if not chunk:
                raise TimeoutError(
                    f"Timeout waiting for reply ({len(data)}/{size} bytes)")
            data += chunk
        return bytes(data)

    def _receive(self, timeout: Optional[float] = None) -> bytes:
        """Receive one length-prefixed reply."""
        if timeout is None:
            prefix = self._read_exact(2)
            return prefix + self._read_exact(int.from_bytes(prefix, "little"))

        previous = self._stream.timeout
        self._stream.timeout = timeout
        try:
            prefix = self._read_exact(2)
            return prefix + self._read_exact(int.from_bytes(prefix, "little"))
        finally:
            self._stream.timeout = previous

    def send(self, frame: bytes, timeout: Optional[float] = None) -> Optional[bytes]:
        """
        Send one frame and wait for its reply.

        Args:
            frame: Complete encoded frame
            timeout: Read timeout for this reply only, in seconds

        Returns:
            Raw reply bytes, or None for frames sent without reply

        Raises:
            IOError: If the session is not open or the stream failed
            TimeoutError: If no complete reply arrived in time
        """
        if self._state is not SessionState.OPEN:
            raise IOError(
                f"Session with {self._address} is {self._state.value}")

        sequence_id = self._sequence_id
        self._sequence_id = (self._sequence_id + 1) & 0xFFFF
        logger.debug("-> #%d %s", sequence_id, frame.hex(" "))

        try:
            self._stream.write(frame)
            self._stream.flush()
            if len(frame) > 4 and frame[4] & NO_REPLY_FLAG:
                return None
            reply = self._receive(timeout)
        except TransportError as e:
            self.fail(e)
            raise
        except (serial.SerialException, OSError) as e:
            self.fail(e)
            raise IOError(f"I/O error on {self._address}: {e}") from e

        logger.debug("<- #%d %s", sequence_id, reply.hex(" "))
        return reply

    def exchange(
        self,
        encode: Callable[..., bytes],
        *args,
        timeout: Optional[float] = None,
        **kwargs,
    ) -> Tuple[int, Optional[bytes]]:
        """
        Encode a frame with the current sequence id and send it.

        Args:
            encode: One of the ``encode_*`` functions
            *args: Operands passed to encode after the sequence id
            timeout: Read timeout for this reply only, in seconds

        Returns:
            Tuple of (sequence id used, raw reply or None)

        Raises:
            EncodingError: If an operand is invalid; nothing is sent
        """
        sequence_id = self._sequence_id
        frame = encode(sequence_id, *args, **kwargs)
        return sequence_id, self.send(frame, timeout=timeout)


def connect(address: str, **kwargs) -> Transport:
    """Open a session; keyword arguments are passed to ``Transport``."""
    return Transport(address, **kwargs)
