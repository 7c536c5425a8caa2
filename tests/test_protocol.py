"""Unit tests for Muse S command framing, chunk decoding and the channel map."""

import pytest

from conftest import eeg_payload, ppg_payload
from musebridge.ble.protocol import (
    CONTROL_UUID,
    EEG_FAMILY,
    EEG_UUIDS,
    HALT_FRAME,
    MUSE_CHANNEL_MAP,
    PPG_FAMILY,
    PPG_UUIDS,
    START_FRAME,
    ChannelMap,
    PayloadTooShort,
    UnrecognizedChannel,
    decode_eeg_chunk,
    decode_ppg_chunk,
    encode_command,
    start_sequence,
)


class TestEncodeCommand:
    def test_halt(self):
        """'h' becomes [len-1, 'h', '\\n'] with the marker overwritten."""
        assert encode_command(b"h") == bytes([2, 0x68, 0x0A])

    def test_multi_byte_command(self):
        assert encode_command(b"p50") == bytes([4]) + b"p50\n"

    def test_str_input(self):
        assert encode_command("d") == encode_command(b"d")

    def test_empty_command(self):
        assert encode_command(b"") == bytes([1, 0x0A])

    def test_longest_command(self):
        frame = encode_command(b"a" * 253)
        assert len(frame) == 255
        assert frame[0] == 254

    def test_too_long_raises(self):
        with pytest.raises(ValueError):
            encode_command(b"a" * 254)

    def test_non_ascii_raises(self):
        with pytest.raises(ValueError):
            encode_command("é")

    def test_prebuilt_frames(self):
        assert HALT_FRAME == bytes([0x02, 0x68, 0x0A])
        assert START_FRAME == bytes([0x02, 0x64, 0x0A])

    def test_start_sequence(self):
        assert start_sequence() == (b"h", b"p50", b"s", b"d")
        assert start_sequence("p21")[1] == b"p21"


class TestDecodeEEG:
    def test_returns_raw_bytes_after_header(self):
        values = list(range(100, 112))
        payload = bytes([0xAB, 0xCD]) + bytes(values)
        assert decode_eeg_chunk(payload) == [float(v) for v in values]

    def test_full_notification_keeps_all_bytes(self):
        """A 20-byte notification yields 18 samples; the reassembler uses 12."""
        samples = decode_eeg_chunk(eeg_payload([7] * 12))
        assert len(samples) == 18
        assert samples[:12] == [7.0] * 12

    def test_no_scaling(self):
        assert decode_eeg_chunk(bytes([0, 0, 255, 0])) == [255.0, 0.0]

    def test_header_bytes_ignored(self):
        a = bytes([0x00, 0x00]) + bytes([0x80] * 12)
        b = bytes([0xFF, 0xFF]) + bytes([0x80] * 12)
        assert decode_eeg_chunk(a) == decode_eeg_chunk(b)

    def test_header_only_gives_empty_chunk(self):
        assert decode_eeg_chunk(b"\x00\x00") == []

    @pytest.mark.parametrize("payload", [b"", b"\x01"])
    def test_too_short(self, payload):
        with pytest.raises(PayloadTooShort):
            decode_eeg_chunk(payload)


class TestDecodePPG:
    def test_24_bit_big_endian(self):
        payload = b"\x00\x00" + bytes([0x01, 0x02, 0x03, 0xFF, 0xFF, 0xFF])
        assert decode_ppg_chunk(payload) == [float(0x010203), float(0xFFFFFF)]

    def test_six_samples(self):
        values = [0, 1, 65536, 123456, 8388608, 16777215]
        assert decode_ppg_chunk(ppg_payload(values)) == [float(v) for v in values]

    def test_no_sign_extension(self):
        assert decode_ppg_chunk(b"\x00\x00\x80\x00\x00") == [8388608.0]

    @pytest.mark.parametrize("extra", [1, 2])
    def test_trailing_bytes_dropped(self, extra):
        payload = ppg_payload([42, 43]) + bytes([0xEE] * extra)
        assert decode_ppg_chunk(payload) == [42.0, 43.0]

    @pytest.mark.parametrize("payload", [b"", b"\x01"])
    def test_too_short(self, payload):
        with pytest.raises(PayloadTooShort):
            decode_ppg_chunk(payload)

    def test_payload_too_short_is_value_error(self):
        assert issubclass(PayloadTooShort, ValueError)


class TestChannelFamily:
    def test_eeg_family(self):
        assert EEG_FAMILY.channels == ("TP9", "AF7", "AF8", "TP10", "AUX")
        assert EEG_FAMILY.chunk_length == 12
        assert EEG_FAMILY.last_channel_index == 4
        assert EEG_FAMILY.sample_rate == 256.0

    def test_ppg_family(self):
        assert PPG_FAMILY.channels == ("AMBIENT", "INFRARED", "RED")
        assert PPG_FAMILY.chunk_length == 6
        assert PPG_FAMILY.last_channel_index == 2
        assert PPG_FAMILY.sample_rate == 64.0

    def test_decode_dispatch(self):
        payload = b"\x00\x00\x01\x02\x03"
        assert EEG_FAMILY.decode(payload) == [1.0, 2.0, 3.0]
        assert PPG_FAMILY.decode(payload) == [float(0x010203)]


class TestChannelMap:
    def test_muse_map_covers_all_channels(self):
        assert len(MUSE_CHANNEL_MAP) == 8
        assert MUSE_CHANNEL_MAP.families == (EEG_FAMILY, PPG_FAMILY)
        assert CONTROL_UUID not in MUSE_CHANNEL_MAP

    def test_resolve(self):
        assert MUSE_CHANNEL_MAP.resolve(EEG_UUIDS["AUX"]) == (EEG_FAMILY, 4)
        assert MUSE_CHANNEL_MAP.resolve(PPG_UUIDS["RED"]) == (PPG_FAMILY, 2)

    def test_unknown_identity(self):
        with pytest.raises(UnrecognizedChannel):
            MUSE_CHANNEL_MAP.resolve(CONTROL_UUID)

    def test_duplicate_slot_rejected(self):
        with pytest.raises(ValueError):
            ChannelMap({"a": (EEG_FAMILY, 0), "b": (EEG_FAMILY, 0)})

    def test_index_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            ChannelMap({"a": (PPG_FAMILY, 3)})
