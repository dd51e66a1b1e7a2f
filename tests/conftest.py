from __future__ import annotations

import logging
import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pcmqc.metrics.loudness import MeasurementError  # noqa: E402
from pcmqc.output import LOGGER_NAME  # noqa: E402


@pytest.fixture(autouse=True)
def _restore_package_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


class ScriptedMeter:
    """Loudness meter stand-in returning pre-set short-term values per window."""

    def __init__(self, values, *, fail_on: set[int] | None = None):
        self.values = list(values)
        self.fail_on = set(fail_on or ())
        self.windows: list[np.ndarray] = []
        self.resets = 0
        self._current: float | None = None

    def reset(self) -> None:
        self.resets += 1
        self._current = None

    def add_window(self, samples) -> None:
        idx = len(self.windows)
        self.windows.append(np.array(samples, copy=True))
        if idx in self.fail_on:
            raise MeasurementError("scripted failure")
        self._current = self.values[idx]

    def short_term_loudness(self):
        return self._current

    def integrated_loudness(self):
        return self._current


def loud_frames(num_frames: int, channels: int, value: int = 1000) -> np.ndarray:
    return np.full((num_frames, channels), value, dtype=np.int32)


def sine_frames(
    num_frames: int,
    channels: int,
    fs: int,
    *,
    amplitude: float = 0.25,
    freq: float = 1000.0
) -> np.ndarray:
    t = np.arange(num_frames) / fs
    x = amplitude * np.sin(2.0 * np.pi * freq * t)
    col = np.round(x * (2 ** 31 - 1)).astype(np.int32)
    return np.repeat(col[:, None], channels, axis=1)

