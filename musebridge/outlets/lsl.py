"""LslOutlet — publish frames as Lab Streaming Layer streams."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
from mne_lsl.lsl import StreamInfo, StreamOutlet

from ..ble.protocol import EEG_FAMILY, FAMILIES, PPG_FAMILY, ChannelFamily
from .base import FrameSink

MANUFACTURER = "Interaxon"
MODEL = "Muse S Gen 2"


@dataclass(frozen=True)
class LslStreamSpec:
    name: str
    stype: str
    source_id: str
    unit: str


STREAM_SPECS: dict[str, LslStreamSpec] = {
    EEG_FAMILY.name: LslStreamSpec(
        name=f"{MODEL} EEG", stype="EEG", source_id="muse-eeg", unit="microvolt",
    ),
    PPG_FAMILY.name: LslStreamSpec(
        name=f"{MODEL} PPG", stype="PPG", source_id="muse-s-ppg", unit="N/A",
    ),
}


def _create_stream_outlet(
    family: ChannelFamily,
    spec: LslStreamSpec,
    max_buffered: int,
) -> StreamOutlet:
    info = StreamInfo(
        name=spec.name,
        stype=spec.stype,
        n_channels=family.channel_count,
        sfreq=family.sample_rate,
        dtype="float32",
        source_id=spec.source_id,
    )
    desc = info.desc
    desc.append_child_value("manufacturer", MANUFACTURER)
    channels = desc.append_child("channels")
    for label in family.channels:
        channel = channels.append_child("channel")
        channel.append_child_value("label", f"{family.name}_{label}")
        channel.append_child_value("unit", spec.unit)
        channel.append_child_value("type", spec.stype)
    acquisition = desc.append_child("acquisition")
    acquisition.append_child_value("manufacturer", MANUFACTURER)
    acquisition.append_child_value("model", MODEL)

    return StreamOutlet(
        info, chunk_size=family.chunk_length, max_buffered=max_buffered
    )


class LslOutlet(FrameSink):
    """One LSL outlet per channel family; each frame is pushed as one sample.

    Usage::

        outlet = LslOutlet()
        device = MuseDevice(sink=outlet)
    """

    def __init__(
        self,
        families: Iterable[ChannelFamily] = FAMILIES,
        *,
        max_buffered: int = 360,
    ):
        self._outlets: dict[str, StreamOutlet] = {
            f.name: _create_stream_outlet(f, STREAM_SPECS[f.name], max_buffered)
            for f in families
        }

    @property
    def stream_names(self) -> list[str]:
        return [STREAM_SPECS[name].name for name in self._outlets]

    def accept(self, frame: np.ndarray, family: ChannelFamily) -> None:
        outlet = self._outlets.get(family.name)
        if outlet is None:
            return
        outlet.push_sample(np.asarray(frame, dtype=np.float32))

    def close(self) -> None:
        self._outlets.clear()
