"""MuseDevice — wires transport → pump → sink and owns the session state."""

from __future__ import annotations

import asyncio
import logging

from .ble.base import Transport, TransportError
from .ble.connection import BleakTransport
from .ble.protocol import (
    HALT_FRAME,
    MUSE_CHANNEL_MAP,
    ChannelMap,
    encode_command,
    start_sequence,
)
from .config import BridgeConfig
from .outlets.base import FrameSink
from .session import NotConnected, SessionState
from .stream.pump import NotificationPump, PumpStats, StreamingGate

logger = logging.getLogger(__name__)


class MuseDevice:
    """Control path for one headset: connect, stream, stop, disconnect.

    Control operations are serialized by a lock held for their whole
    duration. While streaming, a :class:`NotificationPump` task runs on its
    own and only observes the streaming gate.

    Usage::

        device = MuseDevice(BridgeConfig(preset="p50"))
        await device.connect()
        await device.start_streaming()   # frames go to an LSL outlet
        await asyncio.sleep(20)
        await device.disconnect()
    """

    def __init__(
        self,
        config: BridgeConfig | None = None,
        *,
        transport: Transport | None = None,
        sink: FrameSink | None = None,
        channel_map: ChannelMap | None = None,
    ):
        self.config = config or BridgeConfig()
        c = self.config

        self.transport = transport or BleakTransport(
            c.name_prefix,
            scan_timeout=c.scan_timeout,
            connect_timeout=c.connect_timeout,
            max_retries=c.max_retries,
            retry_delay=c.retry_delay,
            trust_device=c.trust_device,
        )
        self.channel_map = channel_map or MUSE_CHANNEL_MAP
        self.sink = sink
        self._owns_sink = sink is None

        self.state = SessionState()
        self.gate = StreamingGate()
        self._lock = asyncio.Lock()
        self._pump: NotificationPump | None = None
        self._pump_task: asyncio.Task | None = None
        # Set when the pump ends on its own; applied to the state under the lock
        self._link_lost = False
        self._link_loss_task: asyncio.Task | None = None

    async def __aenter__(self) -> MuseDevice:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    # Queries

    @property
    def is_connected(self) -> bool:
        return self.state.is_connected

    @property
    def is_streaming(self) -> bool:
        return self.state.is_streaming

    @property
    def ble_name(self) -> str:
        name = self.state.device_name
        if name is None:
            raise NotConnected("Device not connected")
        return name

    @property
    def ble_uuid(self) -> str:
        uuid = self.state.device_uuid
        if uuid is None:
            raise NotConnected("Device not connected")
        return uuid

    @property
    def pump_stats(self) -> PumpStats | None:
        """Counters of the current (or last) streaming session."""
        return self._pump.stats if self._pump else None

    # Control operations

    async def connect(self) -> None:
        async with self._lock:
            self._apply_link_loss()
            name, uuid = await self.transport.connect(self.config.target_address)
            self.state.connect(name, uuid)
            logger.info("Session: %s", self.state.summary())

    async def start_streaming(self) -> None:
        async with self._lock:
            self._apply_link_loss()
            await self._start_streaming()

    async def stop_streaming(self) -> None:
        async with self._lock:
            self._apply_link_loss()
            await self._stop_streaming()

    async def restart_streaming(self) -> None:
        """Stop and start again without dropping the connection."""
        async with self._lock:
            self._apply_link_loss()
            await self._stop_streaming()
            await asyncio.sleep(self.config.restart_delay)
            await self._start_streaming()

    async def disconnect(self) -> None:
        async with self._lock:
            self._apply_link_loss()
            try:
                if self.state.is_streaming:
                    try:
                        await self._stop_streaming()
                    except TransportError as e:
                        logger.warning("Halt failed while disconnecting: %s", e)
                        await self._teardown()
                        self.state.stop_streaming()
                await self.transport.disconnect()
            finally:
                self.state.disconnect()
                if self._owns_sink and self.sink is not None:
                    self.sink.close()
                    self.sink = None
                logger.info("Session: %s", self.state.summary())

    async def send_command(self, command: bytes | str) -> None:
        """Frame and send an arbitrary control command."""
        async with self._lock:
            self._apply_link_loss()
            if not self.state.is_connected:
                raise NotConnected("Device not connected")
            await self.transport.send_control(encode_command(command))

    # Internals (caller holds the lock)

    def _ensure_sink(self) -> FrameSink:
        if self.sink is None:
            # liblsl is loaded only when the default outlet is needed
            from .outlets.lsl import LslOutlet

            self.sink = LslOutlet(
                self.channel_map.families, max_buffered=self.config.lsl_max_buffered
            )
        return self.sink

    async def _start_streaming(self) -> None:
        self.state.check_can_start()
        pump = NotificationPump(self.channel_map, self.gate, self._ensure_sink())

        try:
            for identity in self.channel_map.identities:
                await self.transport.subscribe(identity)

            task = asyncio.create_task(pump.run(self.transport.notifications()))
            task.add_done_callback(self._on_pump_done)
            self._pump, self._pump_task = pump, task

            for command in start_sequence(self.config.preset):
                await self.transport.send_control(encode_command(command))
        except TransportError:
            await self._teardown()
            raise

        self.gate.open()
        self.state.start_streaming()
        logger.info("Streaming started (preset %s)", self.config.preset)

    async def _stop_streaming(self) -> None:
        if not self.state.is_streaming:
            return

        await self.transport.send_control(HALT_FRAME)
        await self._teardown()
        await asyncio.sleep(self.config.teardown_delay)
        self.state.stop_streaming()
        logger.info("Streaming stopped: %s", self.pump_stats)

    async def _teardown(self) -> None:
        """Close the gate, unsubscribe, and wait for the pump to finish."""
        self.gate.close()
        task, self._pump_task = self._pump_task, None

        for identity in self.channel_map.identities:
            try:
                await self.transport.unsubscribe(identity)
            except TransportError as e:
                logger.debug("Unsubscribe %s failed: %s", identity, e)

        self.transport.close_notifications()
        if task is not None:
            try:
                await asyncio.wait_for(task, self.config.teardown_timeout)
            except asyncio.TimeoutError:
                logger.warning("Pump did not drain in %.1fs; cancelled",
                               self.config.teardown_timeout)

    def _on_pump_done(self, task: asyncio.Task) -> None:
        if task is not self._pump_task:
            return  # torn down by the control path

        self._pump_task = None
        self.gate.close()
        if task.cancelled():
            # Only happens at loop shutdown, when no control operation can run
            self.state.stop_streaming()
            return
        if task.exception() is not None:
            logger.error("Pump failed", exc_info=task.exception())
        # Notification stream ended on its own: the link dropped
        logger.warning("Notification stream ended; marking session disconnected")
        self._link_lost = True
        self._link_loss_task = asyncio.ensure_future(self._settle_link_loss())

    async def _settle_link_loss(self) -> None:
        async with self._lock:
            self._apply_link_loss()

    def _apply_link_loss(self) -> None:
        """Move a dropped session to disconnected. Caller holds the lock."""
        if not self._link_lost:
            return
        self._link_lost = False
        self.state.disconnect()
        logger.info("Session: %s", self.state.summary())
