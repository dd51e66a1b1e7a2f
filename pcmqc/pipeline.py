"""Single-pass analysis pipeline over a frame source."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Protocol

from pcmqc.analysers import Analyser, SilenceAnalyser, UnderrunAnalyser
from pcmqc.io.audio import FrameSource
from pcmqc.metrics.loudness import LoudnessMeter
from pcmqc.output import fmt_frame
from pcmqc.reporting.json_report import build_report
from pcmqc.types import AnalysisFlag, StreamInfo

ERR_CONTAINS_UNDERRUN = int(AnalysisFlag.UNDERRUN)
ERR_CONTAINS_SILENCE = int(AnalysisFlag.SILENCE)


class ProgressSink(Protocol):
    def inc(self, n: int = 1) -> None: ...


@dataclass(frozen=True)
class PipelineResult:
    flags: AnalysisFlag
    fragments: dict = field(default_factory=dict)
    frames_processed: int = 0

    @property
    def exit_code(self) -> int:
        return int(self.flags)


def build_analysers(
    config: dict,
    info: StreamInfo,
    *,
    logger: logging.Logger | None = None,
    meter: LoudnessMeter | None = None
) -> list[Analyser]:
    """
    Create the enabled analysers for a stream, silence first.

    Raises ValueError when no analyser is enabled. MeterInitError from the
    silence analyser propagates so the run stops before reading any frame.
    """
    analysers: list[Analyser] = []
    silence_cfg = config["silence"]
    underrun_cfg = config["underrun"]
    if silence_cfg["enabled"]:
        analysers.append(
            SilenceAnalyser(
                info.channels,
                info.sample_rate,
                num_frames=info.num_frames,
                lufs_threshold=silence_cfg["lufs_threshold"],
                percentage_threshold=silence_cfg["percentage_threshold"],
                meter=meter,
                logger=logger,
            )
        )
    if underrun_cfg["enabled"]:
        analysers.append(
            UnderrunAnalyser(
                info.channels,
                info.sample_rate,
                num_frames=info.num_frames,
                min_samples=underrun_cfg["min_samples"],
                logger=logger,
            )
        )
    if not analysers:
        raise ValueError("Neither underrun nor silence detection is active.")
    return analysers


def run_pipeline(
    source: FrameSource,
    analysers: list[Analyser],
    *,
    progress: ProgressSink | None = None
) -> PipelineResult:
    """
    Feed every frame of ``source`` to every analyser, then finish them.

    The source is read exactly once, in order. Each analyser sees each frame
    in list order before the next frame is read.
    """
    num_frames = source.info.num_frames
    digits = len(str(num_frames))

    processed = 0
    for frame_index, frame in enumerate(source.frames()):
        label = fmt_frame(frame_index, digits)
        if progress is not None:
            progress.inc()
        for analyser in analysers:
            analyser.analyse(label, frame_index, frame)
        processed += 1

    label = fmt_frame(num_frames, digits)
    flags = AnalysisFlag.NONE
    for analyser in analysers:
        flags |= analyser.finish(label)

    return PipelineResult(
        flags=flags,
        fragments=build_report(analysers),
        frames_processed=processed,
    )
