# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""Shared test doubles and reply builders."""

from io import BytesIO

from ev3_protocol.bytecodes import ReplyType, SystemStatus


def make_direct_reply(
    sequence_id: int,
    payload: bytes = b"",
    reply_type: int = ReplyType.DIRECT_REPLY,
) -> bytes:
    """Create a direct command reply frame."""
    body = sequence_id.to_bytes(2, "little") + bytes([reply_type]) + payload
    return len(body).to_bytes(2, "little") + body


def make_system_reply(
    sequence_id: int,
    command: int,
    status: int = SystemStatus.SUCCESS,
    payload: bytes = b"",
    reply_type: int = ReplyType.SYSTEM_REPLY,
) -> bytes:
    """Create a system command reply frame."""
    body = (
        sequence_id.to_bytes(2, "little")
        + bytes([reply_type, command, status])
        + payload
    )
    return len(body).to_bytes(2, "little") + body


class MockSerial:
    """Mock serial port replaying canned replies."""

    def __init__(self, responses: list = None, port: str = "/dev/rfcomm0"):
        self.responses = responses or []
        self.response_idx = 0
        self._resp_offset = 0
        self.written = BytesIO()
        self.writes = []
        self.read_timeouts = []
        self.is_open = True
        self.port = port
        self.timeout = 5.0

    def read(self, size: int = 1) -> bytes:
        """Read bytes, returning from response queue one byte at a time."""
        self.read_timeouts.append(self.timeout)
        if self.response_idx >= len(self.responses):
            return b""  # Timeout

        resp = self.responses[self.response_idx]
        byte = resp[self._resp_offset:self._resp_offset + 1]
        self._resp_offset += 1
        if self._resp_offset >= len(resp):
            self.response_idx += 1
            self._resp_offset = 0
        return byte

    def write(self, data: bytes) -> int:
        self.written.write(data)
        self.writes.append(bytes(data))
        return len(data)

    def flush(self):
        pass

    def close(self):
        self.is_open = False
