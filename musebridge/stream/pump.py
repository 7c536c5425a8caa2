"""NotificationPump — decode, reassemble and forward notifications to a sink."""

from __future__ import annotations

import logging
import threading
from collections.abc import AsyncIterator
from dataclasses import dataclass

from ..ble.base import Notification
from ..ble.protocol import ChannelMap, PayloadTooShort, UnrecognizedChannel
from ..outlets.base import FrameSink
from .reassembly import FrameReassembler

logger = logging.getLogger(__name__)


class StreamingGate:
    """Boolean shared by the control path (writer) and the pump (reader).

    Closing the gate is advisory: a notification already past the check
    is still processed.
    """

    def __init__(self, is_open: bool = False) -> None:
        self._event = threading.Event()
        if is_open:
            self._event.set()

    @property
    def is_open(self) -> bool:
        return self._event.is_set()

    def open(self) -> None:
        self._event.set()

    def close(self) -> None:
        self._event.clear()


@dataclass
class PumpStats:
    notifications: int = 0
    unrecognized: int = 0
    gated: int = 0
    decode_errors: int = 0
    frames: int = 0
    sink_errors: int = 0


class NotificationPump:
    """Bridge a notification stream into a :class:`FrameSink`.

    One pump serves one streaming session; its reassembler starts zeroed and
    is discarded with it, so nothing is flushed on exit.

    Usage::

        pump = NotificationPump(MUSE_CHANNEL_MAP, gate, sink)
        task = asyncio.create_task(pump.run(transport.notifications()))
    """

    def __init__(
        self,
        channel_map: ChannelMap,
        gate: StreamingGate,
        sink: FrameSink,
        reassembler: FrameReassembler | None = None,
    ):
        self.channel_map = channel_map
        self.gate = gate
        self.sink = sink
        self.reassembler = reassembler or FrameReassembler(channel_map.families)
        self.stats = PumpStats()

    def handle(self, identity: str, payload: bytes) -> int:
        """Process one notification and return the number of frames pushed."""
        self.stats.notifications += 1

        try:
            family, index = self.channel_map.resolve(identity)
        except UnrecognizedChannel:
            self.stats.unrecognized += 1
            return 0

        if not self.gate.is_open:
            self.stats.gated += 1
            return 0

        try:
            chunk = family.decode(payload)
        except PayloadTooShort as e:
            self.stats.decode_errors += 1
            logger.debug("Dropped %s[%d] notification: %s", family.name, index, e)
            return 0

        pushed = 0
        for frame in self.reassembler.write(family, index, chunk):
            try:
                self.sink.accept(frame, family)
            except Exception as e:
                self.stats.sink_errors += 1
                logger.debug("Sink rejected %s frame: %s", family.name, e)
                continue
            pushed += 1

        self.stats.frames += pushed
        return pushed

    async def run(self, notifications: AsyncIterator[Notification]) -> PumpStats:
        """Consume ``notifications`` until the stream ends or the task is cancelled."""
        async for identity, payload in notifications:
            self.handle(identity, payload)
        logger.debug("Notification stream closed: %s", self.stats)
        return self.stats
