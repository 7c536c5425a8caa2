"""Transport interface the session layer drives."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

# (characteristic identity, raw payload)
Notification = tuple[str, bytes]


class TransportError(RuntimeError):
    """A transport-level operation (scan, connect, write, subscribe) failed."""


class Transport(ABC):
    """Link to one headset: control writes in, notifications out."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    async def connect(self, target: str | None = None) -> tuple[str, str]:
        """Connect and return ``(device_name, device_uuid)``."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        ...

    @abstractmethod
    async def subscribe(self, identity: str) -> None:
        ...

    @abstractmethod
    async def unsubscribe(self, identity: str) -> None:
        ...

    @abstractmethod
    async def send_control(self, frame: bytes) -> None:
        """Write an already-framed command to the control endpoint."""
        ...

    @abstractmethod
    def notifications(self) -> AsyncIterator[Notification]:
        """Open a fresh notification stream.

        The stream ends when :meth:`close_notifications` is called or the
        link drops.
        """
        ...

    @abstractmethod
    def close_notifications(self) -> None:
        ...
