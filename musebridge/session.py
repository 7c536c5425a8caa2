"""SessionState — connection / streaming state machine."""

from __future__ import annotations

from dataclasses import dataclass


class SessionError(RuntimeError):
    """Base class for control-path errors raised by the session layer."""


class InvalidTransition(SessionError):
    """The requested transition is not allowed from the current state."""


class NotConnected(SessionError):
    """The operation needs a connected device."""


@dataclass(frozen=True)
class DeviceInfo:
    name: str
    uuid: str


class SessionState:
    """Connection (disconnected / connected to a device) x streaming flag.

    Streaming implies connected. The object does no I/O; callers serialize
    writes, and readers may query it at any time.
    """

    def __init__(self) -> None:
        self._device: DeviceInfo | None = None
        self._streaming = False

    def __repr__(self) -> str:
        return f"SessionState({self.summary()})"

    # Transitions

    def connect(self, name: str, uuid: str) -> None:
        """Mark connected. A fresh connection always starts stopped."""
        if self._device is None:
            self._streaming = False
        self._device = DeviceInfo(name, uuid)

    def disconnect(self) -> None:
        """Go to disconnected + stopped in one step."""
        self._device, self._streaming = None, False

    def check_can_start(self) -> None:
        if self._device is None:
            raise InvalidTransition("not connected")
        if self._streaming:
            raise InvalidTransition("already streaming")

    def start_streaming(self) -> None:
        self.check_can_start()
        self._streaming = True

    def stop_streaming(self) -> None:
        """Stop streaming. Stopping a stopped session is a no-op."""
        self._streaming = False

    # Queries

    @property
    def is_connected(self) -> bool:
        return self._device is not None

    @property
    def is_streaming(self) -> bool:
        return self._streaming

    @property
    def can_start_streaming(self) -> bool:
        return self._device is not None and not self._streaming

    @property
    def can_stop_streaming(self) -> bool:
        return self._streaming

    @property
    def device_info(self) -> DeviceInfo | None:
        return self._device

    @property
    def device_name(self) -> str | None:
        return self._device.name if self._device else None

    @property
    def device_uuid(self) -> str | None:
        return self._device.uuid if self._device else None

    def summary(self) -> str:
        if self._device is None:
            return f"Disconnected, Streaming: {self._streaming}"
        return (
            f"Connected to {self._device.name} ({self._device.uuid}), "
            f"Streaming: {self._streaming}"
        )
