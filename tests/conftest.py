"""Shared fixtures: an in-memory transport and payload builders."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from musebridge.ble.base import Notification, Transport, TransportError
from musebridge.ble.protocol import EEG_UUIDS, PPG_UUIDS
from musebridge.config import BridgeConfig


def eeg_payload(values: list[int], header: bytes = b"\x00\x01") -> bytes:
    """20-byte EEG notification: header + values, zero-padded to 18 bytes."""
    body = bytes(values) + bytes(max(0, 18 - len(values)))
    return header + body


def ppg_payload(values: list[int], header: bytes = b"\x00\x01") -> bytes:
    """PPG notification: header + 24-bit big-endian samples."""
    return header + b"".join(v.to_bytes(3, "big") for v in values)


def eeg_cycle(offset: int = 0) -> list[Notification]:
    """One full EEG cycle; channel ``i`` carries ``offset + 10*i + k``."""
    return [
        (uuid, eeg_payload([offset + 10 * i + k for k in range(12)]))
        for i, uuid in enumerate(EEG_UUIDS.values())
    ]


def ppg_cycle(offset: int = 0) -> list[Notification]:
    """One full PPG cycle; channel ``i`` carries ``offset + 100000*i + k``."""
    return [
        (uuid, ppg_payload([offset + 100_000 * i + k for k in range(6)]))
        for i, uuid in enumerate(PPG_UUIDS.values())
    ]


class FakeTransport(Transport):
    """Transport double: records control writes, lets tests feed notifications."""

    def __init__(self, name: str = "MuseS-1234", uuid: str = "00:55:DA:B0:12:34"):
        self.name = name
        self.uuid = uuid
        self.connected = False
        self.sent: list[bytes] = []
        self.subscribed: set[str] = set()
        self.fail_connect = False
        self.fail_on: bytes | None = None    # control frame that raises
        self.fail_subscribe = False
        self.fail_disconnect = False
        self.streams_opened = 0
        self._queue: asyncio.Queue[Notification | None] | None = None

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self, target: str | None = None) -> tuple[str, str]:
        if self.fail_connect:
            raise TransportError("no device")
        self.connected = True
        return self.name, target or self.uuid

    async def disconnect(self) -> None:
        if self.fail_disconnect:
            raise TransportError("disconnect failed")
        self.close_notifications()
        self.connected = False
        self.subscribed.clear()

    async def subscribe(self, identity: str) -> None:
        if not self.connected or self.fail_subscribe:
            raise TransportError("subscribe failed")
        self.subscribed.add(identity)

    async def unsubscribe(self, identity: str) -> None:
        if not self.connected:
            raise TransportError("not connected")
        self.subscribed.discard(identity)

    async def send_control(self, frame: bytes) -> None:
        if not self.connected:
            raise TransportError("not connected")
        if frame == self.fail_on:
            raise TransportError("write failed")
        self.sent.append(frame)

    def notifications(self) -> AsyncIterator[Notification]:
        self.close_notifications()
        self._queue = asyncio.Queue()
        self.streams_opened += 1
        return self._drain(self._queue)

    async def _drain(self, queue):
        while True:
            item = await queue.get()
            try:
                if item is None:
                    return
                yield item
            finally:
                queue.task_done()

    def close_notifications(self) -> None:
        if self._queue is not None:
            self._queue.put_nowait(None)
            self._queue = None

    # Test helpers

    def feed(self, notifications: list[Notification]) -> None:
        for identity, payload in notifications:
            self._queue.put_nowait((identity, payload))

    async def settle(self) -> None:
        """Wait until every fed notification has been handled."""
        if self._queue is not None:
            await self._queue.join()

    def drop_link(self) -> None:
        self.connected = False
        self.close_notifications()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fast_config() -> BridgeConfig:
    return BridgeConfig(teardown_delay=0.0, restart_delay=0.0, teardown_timeout=1.0)
