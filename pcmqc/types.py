from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntFlag


class AnalysisFlag(IntFlag):
    """Verdict bits OR-combined into the process exit status."""
    NONE = 0
    UNDERRUN = 0b0001
    SILENCE = 0b0010


class LoudnessState(str, Enum):
    LOUD = "loud"
    SILENT = "silent"

    @classmethod
    def classify(cls, lufs: float, threshold: float) -> "LoudnessState":
        """Loudness exactly at the threshold counts as loud."""
        return cls.SILENT if lufs < threshold else cls.LOUD


@dataclass(frozen=True)
class StreamInfo:
    channels: int
    sample_rate: int
    num_frames: int
    backend: str = "soundfile"
    warnings: list[str] = field(default_factory=list)

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.num_frames / float(self.sample_rate)


@dataclass
class SilenceSegment:
    start: int
    end: int | None = None

    def end_or(self, num_frames: int) -> int:
        return self.end if self.end is not None else num_frames


@dataclass(frozen=True)
class UnderrunEvent:
    channel: int
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start
