"""Silence detection over one-second short-term loudness windows."""
from __future__ import annotations
import logging
from typing import Sequence

import numpy as np

from pcmqc.analysers.base import Analyser
from pcmqc.metrics.loudness import LoudnessMeter, MeasurementError
from pcmqc.output import f32, frame_to_time
from pcmqc.types import AnalysisFlag, LoudnessState, SilenceSegment


def _fmt_lufs(value: float) -> str:
    return f"{value:04.3f}"


class SilenceAnalyser(Analyser):
    """
    Flags streams whose short-term loudness stays below a LUFS threshold.

    Frames are collected into a window of exactly one second of interleaved
    samples. Each full window is measured on its own (the meter is reset
    first) and compared with the previous window: a loud-to-silent edge opens
    a segment, a silent-to-loud edge closes it. A trailing partial window is
    never measured.
    """

    name = "silence"

    def __init__(
        self,
        channels: int,
        sample_rate: int,
        *,
        num_frames: int,
        lufs_threshold: float = -70.0,
        percentage_threshold: float = 99.0,
        meter: LoudnessMeter | None = None,
        logger: logging.Logger | None = None
    ) -> None:
        super().__init__(logger)
        if int(channels) < 1:
            raise ValueError("SilenceAnalyser needs at least one channel.")
        if int(sample_rate) <= 0:
            raise ValueError("SilenceAnalyser needs a positive sample rate.")
        self.channels = int(channels)
        self.sample_rate = int(sample_rate)
        self.num_frames = int(num_frames)
        self.lufs_threshold = float(lufs_threshold)
        self.percentage_threshold = float(percentage_threshold)
        # MeterInitError propagates: nothing can be measured without a meter
        self.meter = meter if meter is not None else LoudnessMeter(
            self.channels, self.sample_rate
        )

        self.window_size = self.sample_rate * self.channels
        self._window = np.zeros(self.window_size, dtype=np.int32)
        self._window_pos = 0

        self.previous_lufs = 0.0
        self.state = LoudnessState.classify(self.previous_lufs, self.lufs_threshold)
        self.silence_start_frame = 0
        self.silence_end_frame = 0
        self.silent_samples = 0
        self.segments: list[SilenceSegment] = []
        self.silence_percentage: float | None = None

    def _integrated(self) -> float:
        value = self.meter.integrated_loudness()
        return float("-inf") if value is None else float(value)

    def _percentage(self, count: int) -> float:
        if self.num_frames <= 0:
            return 0.0
        pct = np.float32(count) / np.float32(self.num_frames) * np.float32(100.0)
        return float(pct)

    def _seconds(self, frames: int) -> float:
        return f32(np.float32(frames) / np.float32(self.sample_rate))

    def analyse(self, label: str, frame_index: int, frame: Sequence[int]) -> None:
        end = self._window_pos + self.channels
        self._window[self._window_pos:end] = frame
        self._window_pos = end
        if self._window_pos < self.window_size:
            return

        self._window_pos = 0
        self.meter.reset()
        try:
            self.meter.add_window(self._window)
        except MeasurementError as exc:
            self.log.warning(
                f"[{label}] error adding frame to loudness measurement: {exc}"
            )
            return

        lufs = self.meter.short_term_loudness()
        self.update(label, frame_index, float("-inf") if lufs is None else float(lufs))

    def update(self, label: str, frame_index: int, lufs: float) -> None:
        """Apply one window's loudness to the silence state machine."""
        current = LoudnessState.classify(lufs, self.lufs_threshold)

        if current is LoudnessState.SILENT and self.state is LoudnessState.LOUD:
            self.silence_start_frame = frame_index
            self.log.info(
                f"[{label}] SILENCE START: LUFS-S: {_fmt_lufs(lufs)}; "
                f"LUFS-I: {_fmt_lufs(self._integrated())} @ "
                f"{frame_to_time(frame_index, self.sample_rate)}"
            )
            self.segments.append(SilenceSegment(start=frame_index))
        elif current is LoudnessState.LOUD and self.state is LoudnessState.SILENT:
            self._close_silence(label, frame_index, lufs)

        self.previous_lufs = lufs
        self.state = current
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(
                f"[{label}] DEBUG        : LUFS-S: {_fmt_lufs(lufs)}; "
                f"LUFS-I: {_fmt_lufs(self._integrated())} @ "
                f"{frame_to_time(frame_index, self.sample_rate)}"
            )

    def _close_silence(self, label: str, end_frame: int, lufs: float) -> None:
        self.silence_end_frame = end_frame
        self.silent_samples += end_frame - self.silence_start_frame
        self.log.info(
            f"[{label}] SILENCE END  : LUFS-S: {_fmt_lufs(lufs)}; "
            f"LUFS-I: {_fmt_lufs(self._integrated())} @ "
            f"{frame_to_time(end_frame, self.sample_rate)} "
            f"({_fmt_lufs(self._percentage(self.silent_samples))}% of total)"
        )
        if self.segments and self.segments[-1].end is None:
            self.segments[-1].end = end_frame

    def finish(self, label: str) -> AnalysisFlag:
        if self.state is LoudnessState.SILENT:
            self._close_silence(label, self.num_frames, self.previous_lufs)
            self.state = LoudnessState.LOUD

        self.silence_percentage = self._percentage(self.silent_samples)
        if self.silent_samples > 0 and self.silence_percentage >= self.percentage_threshold:
            return AnalysisFlag.SILENCE
        return AnalysisFlag.NONE

    def json(self) -> tuple[str, dict] | None:
        if not self.segments:
            return None
        results = []
        for seg in self.segments:
            end = seg.end_or(self.num_frames)
            duration = end - seg.start
            results.append({
                "start": self._seconds(seg.start),
                "end": self._seconds(end),
                "duration": self._seconds(duration),
                "startSample": seg.start,
                "endSample": end,
                "durationSamples": duration,
            })
        return self.name, {"results": results, "threshold": self.lufs_threshold}
