"""Bridge configuration — dataclass-based config with sensible defaults."""

from __future__ import annotations

import logging
from dataclasses import dataclass


@dataclass
class BridgeConfig:
    # BLE
    name_prefix: str = "Muse"
    target_address: str | None = None   # connect to this address/UUID only
    scan_timeout: float = 10.0
    connect_timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 2.0
    trust_device: bool = True           # bluetoothctl trust (BlueZ only)

    # Session
    preset: str = "p50"
    teardown_delay: float = 0.1         # settle time after stopping a pump
    restart_delay: float = 0.2          # pause between stop and start on restart
    teardown_timeout: float = 2.0       # cancel the pump if it hasn't drained

    # LSL
    lsl_max_buffered: int = 360         # seconds of data an outlet may buffer

    # Logging
    log_level: str = "INFO"


def configure_logging(level: str | int = "INFO") -> None:
    """Install a console handler on the ``musebridge`` logger."""
    logger = logging.getLogger("musebridge")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )
        logger.addHandler(handler)
