"""Frame analysers for PCMQC."""

from pcmqc.analysers.base import Analyser
from pcmqc.analysers.silence import SilenceAnalyser
from pcmqc.analysers.underruns import ChannelState, UnderrunAnalyser

__all__ = [
    "Analyser",
    "ChannelState",
    "SilenceAnalyser",
    "UnderrunAnalyser",
]
