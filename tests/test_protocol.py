# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""Tests for protocol encoding/decoding."""

import pytest

from ev3_protocol.bytecodes import (
    ALL_MOTORS,
    MOTOR_A,
    MOTOR_B,
    MOTOR_C,
    PORT_1,
    PORT_2,
    PORT_3,
    PORT_4,
    LedColour,
    MessageType,
    Opcode,
    ReplyType,
    SystemCommand,
    SystemStatus,
)
from ev3_protocol.catalog import CATALOG
from ev3_protocol.errors import DeviceError, EncodingError, ProtocolError
from ev3_protocol.protocol import (
    DirectReply,
    SystemReply,
    ToneEvent,
    decode_command,
    decode_header,
    decode_reply_fields,
    encode_all_stop,
    encode_begin_download,
    encode_continue_download,
    encode_continue_list_files,
    encode_direct,
    encode_draw_image,
    encode_drive,
    encode_get_type_mode,
    encode_list_files,
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
    encode_system,
    encode_timed_motor_start,
    encode_timed_motor_start_wait,
    encode_tone_sequence,
    encode_turn,
    parse_direct,
    parse_system,
    tone_events,
)

from helpers import make_direct_reply, make_system_reply


def h(text: str) -> bytes:
    return bytes.fromhex(text)


class TestMessageType:
    """Tests for MessageType helpers."""

    def test_expects_reply(self):
        assert MessageType.DIRECT_COMMAND_REPLY.expects_reply is True
        assert MessageType.SYSTEM_COMMAND_REPLY.expects_reply is True
        assert MessageType.DIRECT_COMMAND_NO_REPLY.expects_reply is False
        assert MessageType.SYSTEM_COMMAND_NO_REPLY.expects_reply is False

    def test_is_system(self):
        assert MessageType.SYSTEM_COMMAND_REPLY.is_system is True
        assert MessageType.DIRECT_COMMAND_NO_REPLY.is_system is False

    def test_status_str(self):
        assert str(SystemStatus.END_OF_FILE) == "END_OF_FILE"


class TestEncodeDirect:
    """Tests for encode_direct."""

    def test_header(self):
        """Length, sequence id, type and memory header."""
        frame = encode_direct(0x1234, b"\x01", local_size=0, global_size=0)
        assert frame == h("0600 3412 00 0000 01")

    def test_memory_header(self):
        """Global size in byte 5, local size and global high bits in byte 6."""
        frame = encode_direct(1, b"", local_size=10, global_size=0x1FF)
        assert frame[5:7] == bytes([0xFF, (10 << 2) | 0x01])

    def test_no_reply(self):
        frame = encode_direct(1, b"\x01", expect_reply=False)
        assert frame[4] == MessageType.DIRECT_COMMAND_NO_REPLY

    def test_rejects_oversized_memory(self):
        with pytest.raises(EncodingError, match="local_size"):
            encode_direct(1, b"", local_size=64)
        with pytest.raises(EncodingError, match="global_size"):
            encode_direct(1, b"", global_size=1024)

    def test_rejects_bad_sequence_id(self):
        with pytest.raises(EncodingError, match="sequence_id"):
            encode_direct(0x10000, b"")
        with pytest.raises(EncodingError):
            encode_direct(-1, b"")


class TestEncodeSystem:
    """Tests for encode_system."""

    def test_layout(self):
        frame = encode_system(2, SystemCommand.LIST_FILES, b"\xAA")
        assert frame == h("0500 0200 01 99 AA")

    def test_no_reply(self):
        frame = encode_system(2, SystemCommand.LIST_FILES, expect_reply=False)
        assert frame[4] == MessageType.SYSTEM_COMMAND_NO_REPLY


class TestMotorCommands:
    """Tests for motor command frames."""

    def test_motor_start(self):
        frame = encode_motor_start(1, MOTOR_B | MOTOR_C, 50)
        assert frame == h("0D00 0100 00 0000 A4 00 06 81 32 A6 00 06")

    def test_motor_start_negative_power(self):
        frame = encode_motor_start(1, MOTOR_A, -100)
        assert frame == h("0D00 0100 00 0000 A4 00 01 81 9C A6 00 01")

    def test_motor_stop(self):
        assert encode_motor_stop(1, ALL_MOTORS, 1) == h("0900 0100 00 0000 A3 00 0F 01")

    def test_all_stop(self):
        assert encode_all_stop(2) == h("0900 0200 00 0000 A3 00 0F 00")

    def test_drive(self):
        frame = encode_drive(1, MOTOR_B, MOTOR_C, -20)
        assert frame == h("0D00 0100 00 0000 A4 00 06 81 EC A6 00 06")

    def test_turn(self):
        frame = encode_turn(1, MOTOR_B, 30, MOTOR_C, -30)
        assert frame == h(
            "1200 0100 00 0000 A4 00 02 81 1E A4 00 04 81 E2 A6 00 06")

    def test_turn_validates_right_power(self):
        with pytest.raises(EncodingError, match="right_power"):
            encode_turn(1, MOTOR_B, 30, MOTOR_C, 101)

    def test_timed_motor_start(self):
        frame = encode_timed_motor_start(1, MOTOR_A, 50, 100, 1000, 200, 1)
        assert frame == h(
            "1400 0100 00 0000 AD 00 01 81 32 82 64 00 82 E8 03 82 C8 00 01")

    def test_timed_motor_start_wait(self):
        """Start, timer wait and stop in one frame with 10 bytes local memory."""
        frame = encode_timed_motor_start_wait(1, MOTOR_B, 40, 2000, 1)
        assert frame == h(
            "1800 0100 00 0028"
            " A4 00 02 81 28 A6 00 02"
            " 85 82 D0 07 40 86 40"
            " A3 00 02 01"
        )

    def test_power_out_of_range_produces_nothing(self):
        with pytest.raises(EncodingError) as exc_info:
            encode_motor_start(1, MOTOR_A, 101)
        assert exc_info.value.field == "power"

    def test_bool_power_rejected(self):
        with pytest.raises(EncodingError) as exc_info:
            encode_motor_start(1, MOTOR_A, True)
        assert exc_info.value.field == "power"

    def test_bool_brake_rejected(self):
        with pytest.raises(EncodingError, match="brake"):
            encode_motor_stop(1, MOTOR_A, True)

    def test_float_led_colour_rejected(self):
        """A float equal to a valid colour is still not an operand."""
        with pytest.raises(EncodingError, match="colour"):
            encode_set_led(1, 1.0)


class TestToneSequence:
    """Tests for tone sequence frames."""

    def test_single_tone(self):
        frame = encode_tone_sequence(1, [(440, 200, 10)])
        assert frame == h("0F00 0100 00 0000 94 01 0A 82 B8 01 82 C8 00 96")

    def test_ten_bytes_per_event(self):
        tones = [(440, 100, 5)] * 7
        frame = encode_tone_sequence(1, tones)
        assert len(frame) == 7 + 10 * 7

    def test_stops_at_sentinel(self):
        tones = [(440, 100, 5), (880, 100, 5), (-1, -1, -1), (220, 100, 5)]
        frame = encode_tone_sequence(1, tones)
        assert len(frame) == 7 + 20

    def test_stops_at_fifty_events(self):
        tones = [(440, 10, 5)] * 60
        assert len(tone_events(tones)) == 50
        assert len(encode_tone_sequence(1, tones)) == 7 + 500

    def test_sentinel_on_duration_only(self):
        assert tone_events([(440, 100, 5), (440, -1, 5)]) == [ToneEvent(440, 100, 5)]

    def test_no_reply(self):
        frame = encode_tone_sequence(1, [(440, 100, 5)], expect_reply=False)
        assert frame[4] == MessageType.DIRECT_COMMAND_NO_REPLY

    def test_invalid_event_rejected(self):
        with pytest.raises(EncodingError, match="frequency"):
            encode_tone_sequence(1, [(440, 100, 5), (10, 100, 5)])


class TestSensorCommands:
    """Tests for sensor read frames."""

    def test_touch(self):
        frame = encode_read_touch(1, PORT_1)
        assert frame == h("0D00 0100 00 0100 99 1B 00 00 10 00 01 60")

    def test_colour(self):
        frame = encode_read_colour(1, PORT_3)
        assert frame[5:] == h("0100 99 1C 00 02 1D 02 01 60")

    def test_colour_rgb(self):
        """Three datasets written to global offsets 0, 4 and 8."""
        frame = encode_read_colour_rgb(1, PORT_3)
        assert frame[5:] == h("0C00 99 1C 00 02 1D 04 03 60 64 68")

    def test_ultrasonic(self):
        frame = encode_read_ultrasonic(1, PORT_4)
        assert frame[5:] == h("0100 99 1C 00 03 1E 00 01 60")

    def test_gyro(self):
        frame = encode_read_gyro(1, PORT_2)
        assert frame[5:] == h("0400 9E 00 01 00 3F 12 01 60")

    def test_get_type_mode(self):
        frame = encode_get_type_mode(1, PORT_4)
        assert frame[5:] == h("0200 99 05 00 03 60 61")

    def test_port_out_of_range(self):
        with pytest.raises(EncodingError, match="port"):
            encode_read_touch(1, 9)


class TestDisplayAndSoundCommands:
    """Tests for sound, LED, display and name frames."""

    def test_play_sound_file(self):
        frame = encode_play_sound_file(1, "ui/Click", 50)
        assert frame[7:] == h("94 02 81 32 84") + b"ui/Click\x00"

    def test_set_led(self):
        frame = encode_set_led(1, LedColour.RED_PULSE)
        assert frame == h("0800 0100 00 0000 82 1B 08")

    def test_draw_image(self):
        frame = encode_draw_image(1, 1, 10, 20, "img")
        assert frame[7:] == (
            h("84 1C 81 01 82 0A 00 82 14 00 84") + b"img\x00" + h("84 00"))

    def test_draw_image_path_limit(self):
        encode_draw_image(1, 0, 0, 0, "a" * 1004)
        with pytest.raises(EncodingError):
            encode_draw_image(1, 0, 0, 0, "a" * 1005)

    def test_store_display(self):
        assert encode_store_display(1, 3)[7:] == h("84 19 03")

    def test_restore_display_refreshes(self):
        assert encode_restore_display(1, 3)[7:] == h("84 1A 03 84 00")

    def test_set_brick_name(self):
        frame = encode_set_brick_name(1, "EV3")
        assert frame[7:] == h("D4 08 84") + b"EV3\x00"

    def test_brick_name_too_long(self):
        with pytest.raises(EncodingError, match="name"):
            encode_set_brick_name(1, "ABCDEFGHIJKLM")


class TestSystemCommands:
    """Tests for system command frames."""

    def test_list_files(self):
        frame = encode_list_files(1, "/home/")
        assert frame == h("0D00 0100 01 99 F4 03") + b"/home/\x00"

    def test_continue_list_files(self):
        assert encode_continue_list_files(3, 7) == h("0700 0300 01 9A 07 F4 03")

    def test_begin_download(self):
        frame = encode_begin_download(1, 2500, "../prjs/x")
        assert frame[4:10] == h("01 92 C4 09 00 00")
        assert frame[10:] == b"../prjs/x\x00"
        assert decode_header(frame).length == len(frame) - 2

    def test_continue_download(self):
        assert encode_continue_download(2, 5, b"abc") == h("0800 0200 01 93 05 61 62 63")

    def test_continue_download_chunk_limit(self):
        encode_continue_download(2, 5, b"\x00" * 1017)
        with pytest.raises(EncodingError):
            encode_continue_download(2, 5, b"\x00" * 1018)


class TestDecodeFrames:
    """Tests for decode_header and decode_command."""

    @pytest.mark.parametrize("frame", [
        encode_motor_start(7, MOTOR_A, 10),
        encode_timed_motor_start_wait(300, MOTOR_A, 10, 500),
        encode_read_colour_rgb(0xFFFF, PORT_1),
        encode_list_files(42, "/"),
        encode_continue_download(9, 1, b"\x00" * 1017),
    ])
    def test_declared_length_matches(self, frame):
        assert decode_header(frame).length == len(frame) - 2

    def test_decode_direct_command(self):
        frame = encode_read_gyro(300, PORT_2)
        command = decode_command(frame)
        assert command.sequence_id == 300
        assert command.message_type == MessageType.DIRECT_COMMAND_REPLY
        assert command.global_size == 4
        assert command.local_size == 0
        assert command.opcode == Opcode.INPUT_READEXT

    def test_decode_local_memory(self):
        command = decode_command(encode_timed_motor_start_wait(1, MOTOR_A, 10, 500))
        assert command.local_size == 10
        assert command.opcode == Opcode.OUTPUT_POWER

    def test_decode_system_command(self):
        command = decode_command(encode_begin_download(5, 10, "../prjs/a"))
        assert command.message_type == MessageType.SYSTEM_COMMAND_REPLY
        assert command.opcode == SystemCommand.BEGIN_DOWNLOAD
        assert command.body[:4] == (10).to_bytes(4, "little")

    def test_truncated_header(self):
        with pytest.raises(ProtocolError, match="Truncated"):
            decode_header(b"\x01\x00")

    def test_length_mismatch(self):
        frame = encode_set_led(1, LedColour.GREEN)
        with pytest.raises(ProtocolError, match="length"):
            decode_command(frame + b"\x00")

    def test_unknown_message_type(self):
        with pytest.raises(ProtocolError, match="Unknown message type"):
            decode_command(h("0300 0100 42"))


class TestParseDirect:
    """Tests for parse_direct."""

    def test_ok(self):
        reply = parse_direct(make_direct_reply(5, b"\x01\x02"), sequence_id=5)
        assert isinstance(reply, DirectReply)
        assert reply.sequence_id == 5
        assert reply.payload == b"\x01\x02"
        assert reply.type == ReplyType.DIRECT_REPLY

    def test_empty_payload(self):
        assert parse_direct(make_direct_reply(1)).payload == b""

    def test_device_error(self):
        data = make_direct_reply(5, reply_type=ReplyType.DIRECT_REPLY_ERROR)
        with pytest.raises(DeviceError) as exc_info:
            parse_direct(data, sequence_id=5)
        assert exc_info.value.status == ReplyType.DIRECT_REPLY_ERROR

    def test_wrong_reply_type(self):
        data = make_system_reply(5, SystemCommand.LIST_FILES)
        with pytest.raises(ProtocolError, match="Expected direct reply"):
            parse_direct(data)

    def test_sequence_mismatch(self):
        with pytest.raises(ProtocolError, match="Sequence id mismatch"):
            parse_direct(make_direct_reply(6), sequence_id=5)

    def test_length_mismatch(self):
        data = make_direct_reply(5, b"\x01")[:-1]
        with pytest.raises(ProtocolError, match="length mismatch"):
            parse_direct(data)

    def test_truncated(self):
        with pytest.raises(ProtocolError):
            parse_direct(b"\x03\x00\x01")


class TestParseSystem:
    """Tests for parse_system."""

    def test_success(self):
        data = make_system_reply(
            3, SystemCommand.BEGIN_DOWNLOAD, payload=b"\x07")
        reply = parse_system(data, sequence_id=3, command=SystemCommand.BEGIN_DOWNLOAD)
        assert isinstance(reply, SystemReply)
        assert reply.status == SystemStatus.SUCCESS
        assert reply.is_ok is True
        assert reply.payload == b"\x07"

    def test_handle_is_first_payload_byte(self):
        """The handle sits at offset 7 of an 8-byte BEGIN_DOWNLOAD reply."""
        data = make_system_reply(3, SystemCommand.BEGIN_DOWNLOAD, payload=b"\x2A")
        assert len(data) == 8
        reply = parse_system(data)
        fields = decode_reply_fields(CATALOG["begin_download"], reply.payload)
        assert fields == {"handle": 0x2A}

    def test_end_of_file(self):
        data = make_system_reply(
            3, SystemCommand.CONTINUE_DOWNLOAD, SystemStatus.END_OF_FILE, b"\x00")
        reply = parse_system(data)
        assert reply.is_ok is False
        assert reply.is_end_of_file is True

    def test_unknown_status_kept_as_int(self):
        data = make_system_reply(3, SystemCommand.LIST_FILES, 0x42)
        assert parse_system(data).status == 0x42

    def test_error_reply(self):
        data = make_system_reply(
            3, SystemCommand.BEGIN_DOWNLOAD, SystemStatus.NO_PERMISSION,
            reply_type=ReplyType.SYSTEM_REPLY_ERROR)
        with pytest.raises(DeviceError, match="BEGIN_DOWNLOAD failed: NO_PERMISSION") as exc_info:
            parse_system(data)
        assert exc_info.value.status == SystemStatus.NO_PERMISSION

    def test_command_echo_mismatch(self):
        data = make_system_reply(3, SystemCommand.LIST_FILES)
        with pytest.raises(ProtocolError, match="0x99"):
            parse_system(data, command=SystemCommand.BEGIN_DOWNLOAD)

    def test_sequence_mismatch(self):
        data = make_system_reply(4, SystemCommand.LIST_FILES)
        with pytest.raises(ProtocolError, match="Sequence id mismatch"):
            parse_system(data, sequence_id=3)

    def test_direct_reply_rejected(self):
        with pytest.raises(ProtocolError, match="Expected system reply"):
            parse_system(make_direct_reply(3))

    def test_truncated(self):
        with pytest.raises(ProtocolError, match="Truncated system reply"):
            parse_system(h("0400 0300 03 99"))


class TestDecodeReplyFields:
    """Tests for decode_reply_fields."""

    def test_rgb(self):
        payload = (
            (120).to_bytes(4, "little")
            + (300).to_bytes(4, "little")
            + (5).to_bytes(4, "little")
        )
        fields = decode_reply_fields(CATALOG["read_colour_rgb"], payload)
        assert fields == {"red": 120, "green": 300, "blue": 5}

    def test_signed_gyro(self):
        fields = decode_reply_fields(CATALOG["read_gyro"], (-90).to_bytes(4, "little", signed=True))
        assert fields == {"angle": -90}

    def test_list_files(self):
        payload = (1500).to_bytes(4, "little") + b"\x03" + b"file\n"
        fields = decode_reply_fields(CATALOG["list_files"], payload)
        assert fields == {"list_size": 1500, "handle": 3}

    def test_short_payload(self):
        with pytest.raises(ProtocolError, match="too short"):
            decode_reply_fields(CATALOG["read_colour_rgb"], b"\x00" * 11)
