"""BleakTransport — BLE lifecycle for the Muse S headband."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from collections.abc import AsyncIterator
from typing import Any

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from .base import Notification, Transport, TransportError
from .protocol import CONTROL_UUID, MUSE_SERVICE_UUID

logger = logging.getLogger(__name__)

_BLE_ERRORS = (BleakError, asyncio.TimeoutError, OSError)


class BleakTransport(Transport):
    """Scan, connect, subscribe and write to a Muse over bleak.

    Usage::

        transport = BleakTransport()
        name, address = await transport.connect()
        await transport.subscribe(EEG_UUIDS["TP9"])
        async for identity, payload in transport.notifications():
            ...
    """

    def __init__(
        self,
        name_prefix: str = "Muse",
        *,
        scan_timeout: float = 10.0,
        connect_timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        trust_device: bool = True,
    ):
        self.name_prefix = name_prefix
        self.scan_timeout = scan_timeout
        self.connect_timeout = connect_timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.trust_device = trust_device

        self._client: BleakClient | None = None
        self._device: Any = None
        self._queue: asyncio.Queue[Notification | None] | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    def _matches(self, device: Any, adv: Any) -> bool:
        name = device.name or getattr(adv, "local_name", None) or ""
        return self.name_prefix in name

    async def _scan(self, target: str | None) -> None:
        try:
            if target:
                logger.info("Scanning for %s...", target)
                self._device = await BleakScanner.find_device_by_address(
                    target, timeout=self.scan_timeout
                )
            else:
                logger.info("Scanning for %s* devices...", self.name_prefix)
                self._device = await BleakScanner.find_device_by_filter(
                    self._matches,
                    timeout=self.scan_timeout,
                    service_uuids=[MUSE_SERVICE_UUID],
                )
        except _BLE_ERRORS as e:
            raise TransportError(f"Scan failed: {e}") from e

        if not self._device:
            raise TransportError(
                f"{target or self.name_prefix} not found. Is it in pairing mode?"
            )
        logger.info("Found: %s (%s)", self._device.name, self._device.address)

    async def _trust(self) -> None:
        """Trust the device via bluetoothctl to avoid BlueZ auth issues."""
        try:
            subprocess.run(
                ["bluetoothctl", "trust", self._device.address],
                capture_output=True,
                timeout=5,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError):
            pass  # non-fatal

    def _on_disconnected(self, _client: BleakClient) -> None:
        logger.warning("Link to %s lost", getattr(self._device, "address", "?"))
        self.close_notifications()

    def _on_notify(self, sender: Any, data: bytearray) -> None:
        if self._queue is not None:
            self._queue.put_nowait((str(sender.uuid), bytes(data)))

    async def connect(self, target: str | None = None) -> tuple[str, str]:
        """Scan, trust, and connect with retries."""
        await self._scan(target)
        if self.trust_device:
            await self._trust()

        for attempt in range(1, self.max_retries + 1):
            try:
                logger.info("Connecting (attempt %d/%d)...", attempt, self.max_retries)
                self._client = BleakClient(
                    self._device,
                    disconnected_callback=self._on_disconnected,
                    timeout=self.connect_timeout,
                )
                await self._client.connect()
                name = self._device.name or "Unknown Muse"
                logger.info("Connected to %s", name)
                return name, self._device.address
            except _BLE_ERRORS as e:
                self._client = None
                logger.warning("Connect failed: %s", e)
                if attempt < self.max_retries:
                    logger.info("Retrying in %.1fs...", self.retry_delay)
                    await asyncio.sleep(self.retry_delay)

        raise TransportError("All connection attempts failed.")

    async def disconnect(self) -> None:
        """Disconnect and end any open notification stream."""
        self.close_notifications()
        if not self._client:
            return
        client, self._client = self._client, None
        try:
            await client.disconnect()
        except _BLE_ERRORS as e:
            raise TransportError(f"Disconnect failed: {e}") from e

    def _require_client(self) -> BleakClient:
        if self._client is None:
            raise TransportError("Device not connected")
        return self._client

    async def subscribe(self, identity: str) -> None:
        client = self._require_client()
        try:
            await client.start_notify(identity, self._on_notify)
        except _BLE_ERRORS as e:
            raise TransportError(f"Subscribe to {identity} failed: {e}") from e

    async def unsubscribe(self, identity: str) -> None:
        client = self._require_client()
        try:
            await client.stop_notify(identity)
        except _BLE_ERRORS as e:
            raise TransportError(f"Unsubscribe from {identity} failed: {e}") from e

    async def send_control(self, frame: bytes) -> None:
        client = self._require_client()
        try:
            await client.write_gatt_char(CONTROL_UUID, frame, response=False)
        except _BLE_ERRORS as e:
            raise TransportError(f"Control write failed: {e}") from e

    def notifications(self) -> AsyncIterator[Notification]:
        self.close_notifications()
        self._queue = asyncio.Queue()
        return self._drain(self._queue)

    async def _drain(
        self, queue: asyncio.Queue[Notification | None]
    ) -> AsyncIterator[Notification]:
        while True:
            item = await queue.get()
            if item is None:
                return
            yield item

    def close_notifications(self) -> None:
        if self._queue is not None:
            self._queue.put_nowait(None)
            self._queue = None
