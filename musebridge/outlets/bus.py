"""FrameBus — synchronous pub/sub for sample frames."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np

from ..ble.protocol import ChannelFamily
from .base import FrameSink

FrameHandler = Callable[[np.ndarray, ChannelFamily], None]


class FrameBus(FrameSink):
    """Simple synchronous frame dispatcher.

    Usage::

        bus = FrameBus()
        bus.subscribe("EEG", lambda frame, family: print(frame))
        device = MuseDevice(sink=bus)
    """

    def __init__(self) -> None:
        self._handlers: dict[str | None, list[FrameHandler]] = {}

    def subscribe(self, family: str | None, handler: FrameHandler) -> None:
        """Subscribe to a family by name. Pass ``None`` to receive all frames."""
        self._handlers.setdefault(family, []).append(handler)

    def accept(self, frame: np.ndarray, family: ChannelFamily) -> None:
        for handler in self._handlers.get(family.name, []):
            handler(frame, family)
        for handler in self._handlers.get(None, []):
            handler(frame, family)
