"""
PCMQC - PCM Quality Control Tool

Detects sustained digital silence and zero-sample underruns in multichannel
PCM audio in a single pass over the decoded frames.
"""
from pcmqc.version import __version__
from pcmqc.types import (
    AnalysisFlag,
    LoudnessState,
    StreamInfo,
    SilenceSegment,
    UnderrunEvent,
)

__all__ = [
    "__version__",
    "AnalysisFlag",
    "LoudnessState",
    "StreamInfo",
    "SilenceSegment",
    "UnderrunEvent",
]
