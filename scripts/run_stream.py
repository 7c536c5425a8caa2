#!/usr/bin/env python3
"""Stream Muse S EEG + PPG to Lab Streaming Layer.

Usage:
    python scripts/run_stream.py                       # first Muse found, until Ctrl+C
    python scripts/run_stream.py --duration 60
    python scripts/run_stream.py --address 00:55:DA:B0:12:34 --preset p21
"""

import argparse
import asyncio
import signal

from musebridge.config import BridgeConfig, configure_logging
from musebridge.device import MuseDevice


async def main(config: BridgeConfig, duration: float | None) -> None:
    device = MuseDevice(config)

    await device.connect()
    print(f"Connected: {device.ble_name} ({device.ble_uuid})")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, stop.set)

    try:
        await device.start_streaming()
        print("Streaming to LSL... Press Ctrl+C to stop.\n")
        try:
            await asyncio.wait_for(stop.wait(), timeout=duration)
        except asyncio.TimeoutError:
            pass
    finally:
        stats = device.pump_stats
        await device.disconnect()
        print("Stopped.")
        if stats is not None:
            print(
                f"  notifications={stats.notifications} frames={stats.frames} "
                f"decode_errors={stats.decode_errors} sink_errors={stats.sink_errors}"
            )


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Stream Muse S EEG/PPG to LSL")
    ap.add_argument("--address", help="device address (default: first Muse found)")
    ap.add_argument("--name-prefix", default="Muse", help="advertised name to match")
    ap.add_argument("--preset", default="p50", help="device preset command")
    ap.add_argument("--duration", type=float, default=None, help="seconds to stream")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args()

    cfg = BridgeConfig(
        name_prefix=args.name_prefix,
        target_address=args.address,
        preset=args.preset,
        log_level=args.log_level,
    )
    configure_logging(cfg.log_level)
    asyncio.run(main(cfg, args.duration))
