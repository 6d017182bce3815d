# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
File transfer over system commands.

Uploads are a BEGIN_DOWNLOAD (size + path, the brick answers with a
handle) followed by CONTINUE_DOWNLOAD chunks of at most 1017 bytes until
the brick answers END_OF_FILE. Directory listings are a LIST_FILES
request, continued with CONTINUE_LIST_FILES when the listing does not fit
in one reply.
"""

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union

from .bytecodes import SystemStatus
from .catalog import CATALOG, LIST_CHUNK_SIZE, PARTITION_SIZE
from .errors import DeviceError, EncodingError, ProtocolError, TransferError
from .protocol import (
    SystemReply,
    decode_reply_fields,
    encode_begin_download,
    encode_continue_download,
    encode_continue_list_files,
    encode_list_files,
    parse_system,
)

logger = logging.getLogger(__name__)

ALLOWED_UPLOAD_ROOTS = (
    "/home/root/lms2012/apps",
    "/home/root/lms2012/prjs",
    "/home/root/lms2012/tools",
)
SYSTEM_ROOT = "/home/root/lms2012/sys"


def validate_destination(destination: str) -> str:
    """
    Check an upload destination before anything is sent.

    Absolute paths must lie under one of ``ALLOWED_UPLOAD_ROOTS``; relative
    paths are accepted as is (the brick resolves them under ``SYSTEM_ROOT``).

    Returns:
        The destination, unchanged

    Raises:
        EncodingError: If the destination is empty or outside the allowed roots
    """
    if not destination:
        raise EncodingError("destination", destination, "a non-empty path")
    if destination.startswith("/"):
        normalized = posixpath.normpath(destination)
        if not any(
            normalized == root or normalized.startswith(root + "/")
            for root in ALLOWED_UPLOAD_ROOTS
        ):
            raise EncodingError(
                "destination", destination,
                "a path under " + ", ".join(ALLOWED_UPLOAD_ROOTS))
    return destination


def device_path(destination: str) -> str:
    """Return the absolute path the brick stores destination at."""
    if destination.startswith("/"):
        return posixpath.normpath(destination)
    return posixpath.normpath(posixpath.join(SYSTEM_ROOT, destination))


def parse_listing(data: bytes) -> List[str]:
    """Split a LIST_FILES payload into entries, dropping empty lines."""
    text = data.decode("ascii", errors="replace")
    return [entry for entry in text.split("\n") if entry]


@dataclass
class UploadTransfer:
    """State of one upload; returned to the caller once it completes."""
    destination: str
    total_size: int
    handle: Optional[int] = None
    bytes_remaining: int = 0
    partition_size: int = PARTITION_SIZE
    chunks_sent: int = 0
    status: Optional[Union[SystemStatus, int]] = None

    @property
    def bytes_sent(self) -> int:
        return self.total_size - self.bytes_remaining

    @property
    def device_path(self) -> str:
        return device_path(self.destination)

    @property
    def is_complete(self) -> bool:
        return self.bytes_remaining == 0 and self.status in (
            SystemStatus.SUCCESS, SystemStatus.END_OF_FILE)


class FileTransfer:
    """Uploads and directory listings over an open ``Transport``."""

    def __init__(self, transport):
        self._transport = transport

    def _request(self, name: str, encode, *args) -> SystemReply:
        sequence_id, reply = self._transport.exchange(encode, *args)
        try:
            return parse_system(reply, sequence_id, CATALOG[name].opcode)
        except ProtocolError as e:
            self._transport.fail(e)
            raise

    def _transfer_request(self, name: str, encode, *args) -> SystemReply:
        try:
            return self._request(name, encode, *args)
        except TransferError:
            raise
        except DeviceError as e:
            raise TransferError(str(e), status=e.status) from e

    def upload(
        self,
        destination: str,
        data: bytes,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> UploadTransfer:
        """
        Upload a byte buffer to the brick.

        Args:
            destination: Path on the brick
            data: File contents
            progress_callback: Optional callback(bytes_sent, total_bytes)

        Returns:
            Completed UploadTransfer

        Raises:
            EncodingError: If the destination is not allowed (nothing is sent)
            TransferError: If the brick answers with a failure status
        """
        validate_destination(destination)
        data = bytes(data)
        transfer = UploadTransfer(
            destination=destination,
            total_size=len(data),
            bytes_remaining=len(data),
        )

        reply = self._transfer_request(
            "begin_download", encode_begin_download, len(data), destination)
        transfer.status = reply.status
        if not reply.is_ok:
            raise TransferError(
                f"BEGIN_DOWNLOAD {destination} failed: {reply.status}",
                status=int(reply.status))
        transfer.handle = decode_reply_fields(
            CATALOG["begin_download"], reply.payload)["handle"]
        logger.debug("Upload of %d bytes to %s uses handle %d",
                     transfer.total_size, destination, transfer.handle)

        offset = 0
        while transfer.bytes_remaining > 0:
            size = min(transfer.bytes_remaining, transfer.partition_size)
            reply = self._transfer_request(
                "continue_download", encode_continue_download,
                transfer.handle, data[offset:offset + size])
            transfer.status = reply.status

            if not (reply.is_ok or reply.is_end_of_file):
                raise TransferError(
                    f"CONTINUE_DOWNLOAD failed at offset {offset}: {reply.status}",
                    status=int(reply.status))

            offset += size
            transfer.bytes_remaining -= size
            transfer.chunks_sent += 1

            if progress_callback:
                progress_callback(offset, transfer.total_size)

            if reply.is_end_of_file:
                break

        if transfer.bytes_remaining:
            raise TransferError(
                f"Brick ended the transfer with {transfer.bytes_remaining} "
                f"bytes not sent",
                status=int(transfer.status))

        logger.info("Uploaded %d bytes to %s in %d chunks",
                    transfer.total_size, transfer.device_path, transfer.chunks_sent)
        return transfer

    def upload_file(
        self,
        destination: str,
        path: Union[str, Path],
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> UploadTransfer:
        """
        Upload a local file to the brick.

        Raises:
            FileNotFoundError: If the local file does not exist
            TransferError: If the upload fails
        """
        return self.upload(destination, Path(path).read_bytes(), progress_callback)

    def list_directory(self, path: str) -> List[str]:
        """
        List a directory on the brick.

        Entries are returned as the brick reports them: sub-directories end
        with "/", files are "<md5> <size> <name>".

        Raises:
            DeviceError: If the brick refuses the listing
        """
        layout = CATALOG["list_files"]
        reply = self._request("list_files", encode_list_files, path, LIST_CHUNK_SIZE)
        if not (reply.is_ok or reply.is_end_of_file):
            raise DeviceError(f"LIST_FILES {path} failed: {reply.status}",
                              status=int(reply.status))

        fields = decode_reply_fields(layout, reply.payload)
        list_size = fields["list_size"]
        listing = bytearray(reply.payload[layout.reply_size:])

        handle = fields["handle"]
        continuation = CATALOG["continue_list_files"]
        while reply.is_ok and len(listing) < list_size:
            reply = self._request(
                "continue_list_files", encode_continue_list_files,
                handle, LIST_CHUNK_SIZE)
            if not (reply.is_ok or reply.is_end_of_file):
                raise DeviceError(
                    f"CONTINUE_LIST_FILES {path} failed: {reply.status}",
                    status=int(reply.status))
            handle = decode_reply_fields(continuation, reply.payload)["handle"]
            chunk = reply.payload[continuation.reply_size:]
            if not chunk:
                break
            listing += chunk

        return parse_listing(bytes(listing[:list_size]))
