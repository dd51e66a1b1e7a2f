"""Loudness measurement module."""
from __future__ import annotations
import warnings as py_warnings

import numpy as np
import pyloudnorm as pyln
from pyloudnorm.iirfilter import IIRfilter

I32_FULL_SCALE = 2.0 ** 31
MIN_SAMPLE_RATE = 3000
MAX_SAMPLE_RATE = 2822400
MAX_CHANNELS = 64
SURROUND_GAIN = 1.41


class MeterInitError(ValueError):
    """The meter cannot be built for the given channel/rate combination."""


class MeasurementError(ValueError):
    """A window of samples could not be added to the meter."""


def channel_weights(channels: int) -> np.ndarray:
    """
    BS.1770 channel weights for the default channel map.

    Four channels are L/R/Ls/Rs, five are L/R/C/Ls/Rs; for anything wider the
    fourth channel is the LFE slot and contributes nothing.
    """
    if channels == 4:
        weights = [1.0, 1.0, SURROUND_GAIN, SURROUND_GAIN]
    elif channels == 5:
        weights = [1.0, 1.0, 1.0, SURROUND_GAIN, SURROUND_GAIN]
    else:
        weights = []
        for idx in range(channels):
            if idx < 3:
                weights.append(1.0)
            elif idx in (4, 5):
                weights.append(SURROUND_GAIN)
            else:
                weights.append(0.0)
    return np.asarray(weights, dtype=np.float64)


class LoudnessMeter:
    """
    EBU R128 style loudness meter over interleaved integer PCM.

    Audio accumulates across add_window() calls until reset(). Short-term
    loudness is the ungated K-weighted loudness of everything accumulated;
    integrated loudness applies the BS.1770 gating through pyloudnorm.
    """

    def __init__(self, channels: int, sample_rate: int) -> None:
        channels = int(channels)
        sample_rate = int(sample_rate)
        if channels < 1 or channels > MAX_CHANNELS:
            raise MeterInitError(
                f"Unsupported channel count for loudness measurement: {channels}"
            )
        if sample_rate <= MIN_SAMPLE_RATE or sample_rate > MAX_SAMPLE_RATE:
            raise MeterInitError(
                f"Unsupported sample rate for loudness measurement: {sample_rate} Hz"
            )
        self.channels = channels
        self.sample_rate = sample_rate
        self._weights = channel_weights(channels)
        self._filters = [
            IIRfilter(4.0, 1 / np.sqrt(2), 1500.0, sample_rate, "high_shelf"),
            IIRfilter(0.0, 0.5, 38.0, sample_rate, "high_pass"),
        ]
        self._gated = pyln.Meter(sample_rate)
        self._chunks: list[np.ndarray] = []

    def reset(self) -> None:
        self._chunks = []

    def add_window(self, samples) -> None:
        """Add interleaved integer samples; raises MeasurementError on bad input."""
        x = np.asarray(samples)
        if x.ndim != 1:
            raise MeasurementError("Expected a 1D buffer of interleaved samples.")
        if x.size == 0:
            raise MeasurementError("Expected a non-empty sample buffer.")
        if x.dtype.kind not in "iu":
            raise MeasurementError(f"Expected integer samples, got {x.dtype}.")
        if x.size % self.channels != 0:
            raise MeasurementError(
                f"Buffer of {x.size} samples is not a whole number of "
                f"{self.channels}-channel frames."
            )
        frames = x.reshape(-1, self.channels).astype(np.float64) / I32_FULL_SCALE
        self._chunks.append(frames)

    def _accumulated(self) -> np.ndarray | None:
        if not self._chunks:
            return None
        if len(self._chunks) > 1:
            self._chunks = [np.concatenate(self._chunks, axis=0)]
        return self._chunks[0]

    def short_term_loudness(self) -> float | None:
        data = self._accumulated()
        if data is None:
            return None
        power = 0.0
        for ch in range(self.channels):
            weight = self._weights[ch]
            if weight == 0.0:
                continue
            y = data[:, ch]
            for stage in self._filters:
                y = stage.apply_filter(y)
            power += weight * float(np.mean(np.square(y)))
        if power <= 0.0:
            return float("-inf")
        return float(-0.691 + 10.0 * np.log10(power))

    def integrated_loudness(self) -> float | None:
        data = self._accumulated()
        if data is None:
            return None
        try:
            with py_warnings.catch_warnings():
                py_warnings.simplefilter("ignore", RuntimeWarning)
                value = self._gated.integrated_loudness(data)
        except ValueError:
            # too short for one gating block, or a layout pyloudnorm rejects
            return None
        value = float(value)
        if np.isnan(value):
            # every block fell below the absolute gate
            return float("-inf")
        return value
