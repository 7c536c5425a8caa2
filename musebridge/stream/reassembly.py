"""FrameReassembler — per-family slates that turn channel chunks into frames."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from ..ble.protocol import FAMILIES, ChannelFamily


class FrameReassembler:
    """Collect one chunk per channel and emit aligned frames per cycle.

    The headset sends each channel's chunk as its own notification in a fixed
    channel order. The last channel of a family closes the cycle: its write
    returns a ``(chunk_length, channel_count)`` block, one row per instant,
    and the slate is zeroed.

    Usage::

        reasm = FrameReassembler()
        for i in range(4):
            reasm.write(EEG_FAMILY, i, chunk)         # -> empty block
        frames = reasm.write(EEG_FAMILY, 4, chunk)    # -> shape (12, 5)
    """

    def __init__(self, families: Iterable[ChannelFamily] = FAMILIES):
        self._families: dict[str, ChannelFamily] = {f.name: f for f in families}
        self._slates: dict[str, np.ndarray] = {
            name: np.zeros((f.channel_count, f.chunk_length), dtype=np.float64)
            for name, f in self._families.items()
        }

    @property
    def families(self) -> tuple[ChannelFamily, ...]:
        return tuple(self._families.values())

    def write(
        self,
        family: ChannelFamily,
        channel_index: int,
        chunk: Sequence[float],
    ) -> np.ndarray:
        """Store a channel's chunk; return the completed frames, if any."""
        slate = self._slates[family.name]
        if not 0 <= channel_index < family.channel_count:
            raise IndexError(
                f"channel {channel_index} out of range for {family.name}"
            )

        # Short chunks are dropped; the slot keeps its previous value
        if len(chunk) >= family.chunk_length:
            slate[channel_index, :] = chunk[:family.chunk_length]

        if channel_index != family.last_channel_index:
            return np.empty((0, family.channel_count), dtype=np.float64)

        frames = slate.T.copy()
        slate.fill(0.0)
        return frames

    def slate(self, family: ChannelFamily) -> np.ndarray:
        """Copy of the pending chunks, shape ``(channel_count, chunk_length)``."""
        return self._slates[family.name].copy()

    def reset(self, family: ChannelFamily | None = None) -> None:
        names = [family.name] if family is not None else list(self._slates)
        for name in names:
            self._slates[name].fill(0.0)
