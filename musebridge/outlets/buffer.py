"""FrameBuffer — fixed-size ring buffer of frames per channel family."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from ..ble.protocol import FAMILIES, ChannelFamily
from .base import FrameSink


class FrameBuffer(FrameSink):
    """Ring buffer that stores the last ``duration`` seconds per family.

    Usage::

        buf = FrameBuffer(duration=10.0)
        device = MuseDevice(sink=buf)
        ...
        eeg = buf.get_window("EEG", seconds=2.0)  # shape (512, 5)
    """

    def __init__(
        self,
        duration: float = 10.0,
        families: Iterable[ChannelFamily] = FAMILIES,
    ):
        self.duration = duration
        self._families = {f.name: f for f in families}
        self._capacity = {
            name: max(1, int(duration * f.sample_rate))
            for name, f in self._families.items()
        }
        self._buffers: dict[str, np.ndarray] = {
            name: np.zeros((self._capacity[name], f.channel_count), dtype=np.float64)
            for name, f in self._families.items()
        }
        self._write_pos: dict[str, int] = {name: 0 for name in self._families}
        self._count: dict[str, int] = {name: 0 for name in self._families}

    def capacity(self, family: str) -> int:
        return self._capacity[family]

    def accept(self, frame: np.ndarray, family: ChannelFamily) -> None:
        """Append one frame to the family's ring buffer."""
        name = family.name
        pos = self._write_pos[name]
        self._buffers[name][pos] = frame
        self._write_pos[name] = (pos + 1) % self._capacity[name]
        self._count[name] = min(self._count[name] + 1, self._capacity[name])

    def get_window(self, family: str, seconds: float | None = None) -> np.ndarray:
        """Return the last ``seconds`` of frames (or all available frames).

        Returns a contiguous ``(n, channel_count)`` copy in chronological order.
        """
        count = self._count[family]
        n_channels = self._families[family].channel_count
        if count == 0:
            return np.empty((0, n_channels), dtype=np.float64)

        if seconds is not None:
            n = min(int(seconds * self._families[family].sample_rate), count)
        else:
            n = count
        if n <= 0:
            return np.empty((0, n_channels), dtype=np.float64)

        buf = self._buffers[family]
        pos = self._write_pos[family]
        capacity = self._capacity[family]

        # Frames are at rows [pos-n, pos) in the ring buffer (mod capacity)
        start = (pos - n) % capacity
        if start < pos:
            return buf[start:pos].copy()
        else:
            return np.concatenate([buf[start:], buf[:pos]])

    def sample_count(self, family: str) -> int:
        """Number of frames held for a family (capped at capacity)."""
        return self._count[family]

    def total_samples(self) -> int:
        """Total frames across all families."""
        return sum(self._count.values())
