"""Underrun detection: runs of exact-zero samples per channel."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from pcmqc.analysers.base import Analyser
from pcmqc.output import f32, frame_to_time
from pcmqc.types import AnalysisFlag, UnderrunEvent


@dataclass
class ChannelState:
    underrun_count: int = 0
    underrun_prev_index: int = 0


class UnderrunAnalyser(Analyser):
    """
    Reports runs of at least ``min_samples`` consecutive zero samples.

    Each channel is tracked on its own. A run only continues when the
    previous zero on that channel was in the immediately preceding frame.
    """

    name = "underruns"

    def __init__(
        self,
        channels: int,
        sample_rate: int,
        *,
        num_frames: int,
        min_samples: int = 16,
        logger: logging.Logger | None = None
    ) -> None:
        super().__init__(logger)
        self.sample_rate = int(sample_rate)
        self.num_frames = int(num_frames)
        self.min_samples = int(min_samples)
        self.states = [ChannelState() for _ in range(int(channels))]
        self.events: list[UnderrunEvent] = []
        self.contains_underrun = False

    def _report(self, label: str, channel: int, start: int, end: int) -> None:
        event = UnderrunEvent(channel=channel, start=start, end=end)
        self.events.append(event)
        self.contains_underrun = True
        duration = float(np.float32(event.length) / np.float32(self.sample_rate))
        self.log.info(
            f"[{label}] UNDERRUN     : CH:{channel} - {event.length} samples "
            f"({duration:06.3f}s) {frame_to_time(start, self.sample_rate)} -> "
            f"{frame_to_time(end, self.sample_rate)}"
        )

    def analyse(self, label: str, frame_index: int, frame: Sequence[int]) -> None:
        debug = self.log.isEnabledFor(logging.DEBUG)
        for channel, sample in enumerate(frame):
            state = self.states[channel]
            if sample == 0:
                if frame_index - state.underrun_prev_index > 1:
                    state.underrun_count = 0
                state.underrun_count += 1
                if debug:
                    self.log.debug(
                        f"[{label}] DEBUG        : 0-crossing @ "
                        f"{frame_to_time(frame_index, self.sample_rate)}"
                    )
                state.underrun_prev_index = frame_index
            else:
                if state.underrun_count >= self.min_samples:
                    self._report(
                        label, channel, frame_index - state.underrun_count, frame_index
                    )
                state.underrun_count = 0

    def finish(self, label: str) -> AnalysisFlag:
        for channel, state in enumerate(self.states):
            if state.underrun_count >= self.min_samples:
                self._report(
                    label, channel, self.num_frames - state.underrun_count, self.num_frames
                )
                state.underrun_count = 0
        return AnalysisFlag.UNDERRUN if self.contains_underrun else AnalysisFlag.NONE

    def json(self) -> tuple[str, dict] | None:
        if not self.events:
            return None
        results = []
        for event in self.events:
            results.append({
                "channel": event.channel,
                "start": f32(np.float32(event.start) / np.float32(self.sample_rate)),
                "end": f32(np.float32(event.end) / np.float32(self.sample_rate)),
                "duration": f32(np.float32(event.length) / np.float32(self.sample_rate)),
                "startSample": event.start,
                "endSample": event.end,
                "durationSamples": event.length,
            })
        return self.name, {"results": results, "threshold": self.min_samples}
