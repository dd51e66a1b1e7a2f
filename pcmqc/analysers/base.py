from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Sequence

from pcmqc.output import LOGGER_NAME
from pcmqc.types import AnalysisFlag


class Analyser(ABC):
    """
    A stateful detector fed one frame at a time during a single pass.

    ``analyse`` must not raise for numeric or measurement faults; it logs and
    keeps going. ``finish`` is called exactly once after the last frame and
    closes anything still open as if the stream ended on a loud, non-zero
    frame. ``json`` returns ``(name, payload)`` only when there are findings.
    """

    name: str = ""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.log = logger if logger is not None else logging.getLogger(
            f"{LOGGER_NAME}.analysers.{self.name}"
        )

    @abstractmethod
    def analyse(self, label: str, frame_index: int, frame: Sequence[int]) -> None:
        ...

    @abstractmethod
    def finish(self, label: str) -> AnalysisFlag:
        ...

    def json(self) -> tuple[str, dict] | None:
        return None
