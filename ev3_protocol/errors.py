# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Exception hierarchy for the EV3 protocol client.

``ConnectionError``, ``IOError`` and ``TimeoutError`` deliberately reuse the
builtin names; import them from this package to get the EV3 variants.
"""


class EV3Error(Exception):
    """Base exception for all EV3 protocol errors."""
    pass


class EncodingError(EV3Error, ValueError):
    """
    An operand is out of range, so no frame was built.

    Attributes:
        field: Operand name
        value: Rejected value
        valid_range: Human readable description of accepted values
    """

    def __init__(self, field: str, value, valid_range: str):
        self.field = field
        self.value = value
        self.valid_range = valid_range
        super().__init__(f"Invalid {field}: {value!r} (expected {valid_range})")


class TransportError(EV3Error):
    """Base exception for stream errors."""
    pass


class ConnectionError(TransportError):
    """Could not open the stream to the brick."""
    pass


class IOError(TransportError):
    """Write or read failed on an open session; the session is unusable."""
    pass


class TimeoutError(IOError):
    """No reply within the read timeout."""
    pass


class ProtocolError(EV3Error):
    """Malformed reply, unexpected reply type or sequence id mismatch."""
    pass


class DeviceError(EV3Error):
    """
    The brick answered with a failure status.

    Attributes:
        status: Raw status code (reply type byte for direct commands,
            system status code for system commands)
    """

    def __init__(self, message: str, status: int):
        self.status = status
        super().__init__(message)


class TransferError(DeviceError):
    """A file transfer ended with a status other than SUCCESS/END_OF_FILE."""
    pass
