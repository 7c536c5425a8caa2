"""Sink interface for completed sample frames."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from ..ble.protocol import ChannelFamily


class FrameSink(ABC):
    """Base class for everything that receives reassembled frames."""

    @abstractmethod
    def accept(self, frame: np.ndarray, family: ChannelFamily) -> None:
        """Take one frame (one value per channel, family order).

        Called from the notification pump for every frame. Must not block;
        delivery is best-effort.
        """
        ...

    def close(self) -> None:
        """Release any resources. Default: nothing to release."""
