"""Muse S BLE protocol — UUIDs, command framing, chunk decoding, channel map."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field

# GATT service / characteristic UUIDs
MUSE_SERVICE_UUID = "0000fe8d-0000-1000-8000-00805f9b34fb"
CONTROL_UUID = "273e0001-4c4d-454d-96be-f03bac821358"

EEG_UUIDS = {
    "TP9":  "273e0003-4c4d-454d-96be-f03bac821358",
    "AF7":  "273e0004-4c4d-454d-96be-f03bac821358",
    "AF8":  "273e0005-4c4d-454d-96be-f03bac821358",
    "TP10": "273e0006-4c4d-454d-96be-f03bac821358",
    "AUX":  "273e0007-4c4d-454d-96be-f03bac821358",
}

PPG_UUIDS = {
    "AMBIENT":  "273e000f-4c4d-454d-96be-f03bac821358",
    "INFRARED": "273e0010-4c4d-454d-96be-f03bac821358",
    "RED":      "273e0011-4c4d-454d-96be-f03bac821358",
}

# Control command tokens (framed with encode_command before sending)
CMD_HALT = b"h"
CMD_STATUS = b"s"
CMD_START = b"d"
DEFAULT_PRESET = b"p50"

MAX_FRAME_LENGTH = 255
HEADER_LENGTH = 2
PPG_SAMPLE_BYTES = 3


class PayloadTooShort(ValueError):
    """A notification payload is shorter than its 2-byte header."""


class UnrecognizedChannel(KeyError):
    """A notification arrived from a characteristic outside the channel map."""


def _as_bytes(command: bytes | bytearray | str) -> bytes:
    if isinstance(command, str):
        try:
            return command.encode("ascii")
        except UnicodeEncodeError as exc:
            raise ValueError("command must be ASCII") from exc
    return bytes(command)


def encode_command(command: bytes | bytearray | str) -> bytes:
    """Frame a control command as ``[length][command]['\\n']``.

    The buffer is built as ``X{command}\\n`` and the leading marker is then
    overwritten with ``len(buffer) - 1``. The length field is a single byte,
    so commands longer than 253 bytes are rejected.
    """
    payload = _as_bytes(command)
    frame = bytearray(b"X" + payload + b"\n")
    if len(frame) > MAX_FRAME_LENGTH:
        raise ValueError(
            f"command too long ({len(payload)} bytes, max {MAX_FRAME_LENGTH - 2})"
        )
    frame[0] = len(frame) - 1
    return bytes(frame)


def start_sequence(preset: bytes | str = DEFAULT_PRESET) -> tuple[bytes, ...]:
    """Command tokens sent when streaming starts: halt, preset, status, start."""
    return (CMD_HALT, _as_bytes(preset), CMD_STATUS, CMD_START)


HALT_FRAME = encode_command(CMD_HALT)    # [0x02, 'h', '\n']
START_FRAME = encode_command(CMD_START)  # [0x02, 'd', '\n']


def _check_header(payload: bytes | bytearray) -> None:
    if len(payload) < HEADER_LENGTH:
        raise PayloadTooShort(
            f"payload has {len(payload)} bytes, need at least {HEADER_LENGTH}"
        )


def decode_eeg_chunk(payload: bytes | bytearray) -> list[float]:
    """Decode an EEG notification: drop the 2-byte header, keep raw bytes.

    Each remaining byte becomes one unscaled sample.
    """
    _check_header(payload)
    return [float(b) for b in payload[HEADER_LENGTH:]]


def decode_ppg_chunk(payload: bytes | bytearray) -> list[float]:
    """Decode a PPG notification into unsigned 24-bit big-endian samples.

    Trailing bytes that do not fill a 3-byte group are dropped.
    """
    _check_header(payload)
    body = payload[HEADER_LENGTH:]
    usable = len(body) - len(body) % PPG_SAMPLE_BYTES
    return [
        float(body[i] << 16 | body[i + 1] << 8 | body[i + 2])
        for i in range(0, usable, PPG_SAMPLE_BYTES)
    ]


@dataclass(frozen=True)
class ChannelFamily:
    """A group of channels sharing a chunk length and a decode rule."""

    name: str
    channels: tuple[str, ...]
    chunk_length: int
    sample_rate: float
    decoder: Callable[[bytes], list[float]] = field(compare=False, repr=False)

    @property
    def channel_count(self) -> int:
        return len(self.channels)

    @property
    def last_channel_index(self) -> int:
        return len(self.channels) - 1

    def decode(self, payload: bytes | bytearray) -> list[float]:
        return self.decoder(payload)


EEG_FAMILY = ChannelFamily(
    name="EEG",
    channels=tuple(EEG_UUIDS),
    chunk_length=12,
    sample_rate=256.0,
    decoder=decode_eeg_chunk,
)

PPG_FAMILY = ChannelFamily(
    name="PPG",
    channels=tuple(PPG_UUIDS),
    chunk_length=6,
    sample_rate=64.0,
    decoder=decode_ppg_chunk,
)

FAMILIES = (EEG_FAMILY, PPG_FAMILY)


class ChannelMap(Mapping):
    """Fixed mapping of characteristic identity -> (family, channel index).

    Usage::

        cmap = ChannelMap.from_families({EEG_FAMILY: EEG_UUIDS})
        family, index = cmap.resolve("273e0007-...")  # (EEG_FAMILY, 4)
    """

    def __init__(self, entries: Mapping[str, tuple[ChannelFamily, int]]):
        seen: dict[tuple[str, int], str] = {}
        families: dict[str, ChannelFamily] = {}
        for identity, (family, index) in entries.items():
            if not 0 <= index < family.channel_count:
                raise ValueError(
                    f"{identity}: index {index} out of range for {family.name}"
                )
            key = (family.name, index)
            if key in seen:
                raise ValueError(
                    f"{identity} and {seen[key]} both map to {family.name}[{index}]"
                )
            seen[key] = identity
            families.setdefault(family.name, family)
        self._entries = dict(entries)
        self._families = tuple(families.values())

    @classmethod
    def from_families(
        cls, uuids: Mapping[ChannelFamily, Mapping[str, str]]
    ) -> ChannelMap:
        """Build from ``{family: {channel_name: identity}}``."""
        entries = {}
        for family, by_name in uuids.items():
            for name, identity in by_name.items():
                entries[identity] = (family, family.channels.index(name))
        return cls(entries)

    @property
    def families(self) -> tuple[ChannelFamily, ...]:
        return self._families

    @property
    def identities(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def resolve(self, identity: str) -> tuple[ChannelFamily, int]:
        try:
            return self._entries[identity]
        except KeyError:
            raise UnrecognizedChannel(identity) from None

    def __getitem__(self, identity: str) -> tuple[ChannelFamily, int]:
        return self._entries[identity]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


MUSE_CHANNEL_MAP = ChannelMap.from_families({
    EEG_FAMILY: EEG_UUIDS,
    PPG_FAMILY: PPG_UUIDS,
})
