"""Tests for configuration defaults and logging setup."""

import logging

from musebridge.config import BridgeConfig, configure_logging


def test_defaults():
    c = BridgeConfig()
    assert c.name_prefix == "Muse"
    assert c.target_address is None
    assert c.preset == "p50"
    assert c.lsl_max_buffered == 360


def test_configure_logging_is_idempotent():
    configure_logging("DEBUG")
    configure_logging("WARNING")
    logger = logging.getLogger("musebridge")
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1
