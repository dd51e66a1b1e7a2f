"""Audio I/O module."""
from __future__ import annotations
import json
import logging
import os
import shutil
import subprocess
import warnings as py_warnings
from abc import ABC, abstractmethod
from typing import Iterator

import numpy as np
from pcmqc.types import StreamInfo

DEFAULT_BLOCK_FRAMES = 65536
_I32_MIN = np.iinfo(np.int32).min
_I32_MAX = np.iinfo(np.int32).max

log = logging.getLogger(__name__)


class FrameSource(ABC):
    """
    A finite, non-restartable sequence of PCM frames.

    Each frame is a 1D int32 array holding one sample per channel. Stream
    metadata is available through ``info`` before any frame is read.
    """

    def __init__(self, info: StreamInfo) -> None:
        self.info = info
        self._consumed = False

    def frames(self) -> Iterator[np.ndarray]:
        if self._consumed:
            raise RuntimeError("Frame source has already been read.")
        self._consumed = True
        return self._iter_frames()

    @abstractmethod
    def _iter_frames(self) -> Iterator[np.ndarray]:
        ...


class ArrayFrameSource(FrameSource):
    """Frame source over integer samples already held in memory."""

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int,
        *,
        backend: str = "memory",
        warnings: list[str] | None = None
    ) -> None:
        x = np.asarray(samples)
        if x.ndim == 1:
            x = x.reshape(-1, 1)
        if x.ndim != 2:
            raise ValueError("Samples must be a 1D or 2D (frames, channels) array.")
        if x.dtype.kind not in "iu":
            raise ValueError(f"Samples must be integer PCM, got {x.dtype}.")
        if x.size and (x.min() < _I32_MIN or x.max() > _I32_MAX):
            raise ValueError("Samples exceed the 32-bit integer range.")
        if int(sample_rate) <= 0:
            raise ValueError("Sample rate must be positive.")
        self._samples = x.astype(np.int32, copy=False)
        super().__init__(
            StreamInfo(
                channels=int(x.shape[1]),
                sample_rate=int(sample_rate),
                num_frames=int(x.shape[0]),
                backend=backend,
                warnings=list(warnings or []),
            )
        )

    def _iter_frames(self) -> Iterator[np.ndarray]:
        yield from self._samples


class SoundfileFrameSource(FrameSource):
    """Stream int32 frames block by block through libsndfile."""

    def __init__(self, path: str, *, block_frames: int = DEFAULT_BLOCK_FRAMES) -> None:
        try:
            import soundfile as sf
        except Exception as exc:
            raise RuntimeError("soundfile backend not available.") from exc

        with py_warnings.catch_warnings(record=True) as w:
            py_warnings.simplefilter("always")
            with sf.SoundFile(path) as f:
                channels = int(f.channels)
                sample_rate = int(f.samplerate)
                num_frames = int(f.frames)
        self._sf = sf
        self._path = path
        self._block_frames = max(1, int(block_frames))
        super().__init__(
            StreamInfo(
                channels=channels,
                sample_rate=sample_rate,
                num_frames=num_frames,
                backend="soundfile",
                warnings=[str(wi.message) for wi in w],
            )
        )

    def _iter_frames(self) -> Iterator[np.ndarray]:
        decoded = 0
        with self._sf.SoundFile(self._path) as f:
            for block in f.blocks(
                blocksize=self._block_frames, dtype="int32", always_2d=True
            ):
                decoded += block.shape[0]
                yield from block
        if decoded < self.info.num_frames:
            message = (
                "decoded fewer frames than file reports "
                f"({decoded} of {self.info.num_frames})."
            )
            self.info.warnings.append(message)
            log.warning(message)


def _ffprobe_info(path: str) -> tuple[int, int]:
    """Return (sample_rate, channels) from ffprobe."""
    ffprobe = shutil.which("ffprobe")
    if not ffprobe:
        raise RuntimeError("ffprobe not found for ffmpeg backend.")
    cmd = [
        ffprobe,
        "-v", "error",
        "-select_streams", "a:0",
        "-show_entries", "stream=sample_rate,channels",
        "-of", "json",
        path,
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    if proc.returncode != 0:
        raise ValueError(f"ffprobe failed: {proc.stderr.strip()}")
    info = json.loads(proc.stdout)
    streams = info.get("streams", [])
    if not streams:
        raise ValueError("ffprobe reported no audio streams.")
    stream = streams[0]
    return int(stream["sample_rate"]), int(stream["channels"])


def _decode_ffmpeg(path: str) -> ArrayFrameSource:
    """Decode using ffmpeg to raw signed 32-bit PCM."""
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise RuntimeError("ffmpeg backend not available.")
    fs, ch = _ffprobe_info(path)
    cmd = [
        ffmpeg,
        "-v", "warning",
        "-i", path,
        "-f", "s32le",
        "-acodec", "pcm_s32le",
        "-vn",
        "pipe:1",
    ]
    proc = subprocess.run(cmd, capture_output=True, check=False)
    warn_list = [
        line for line in proc.stderr.decode("utf-8", errors="replace").splitlines()
        if line.strip()
    ]
    if proc.returncode != 0:
        raise ValueError("ffmpeg decode failed.")
    data = np.frombuffer(proc.stdout, dtype="<i4")
    if ch <= 0:
        raise ValueError("ffprobe reported no channels.")
    n = (data.size // ch) * ch
    if n != data.size:
        warn_list.append("ffmpeg: trimmed partial frame at end of stream.")
        data = data[:n]
    return ArrayFrameSource(
        data.reshape(-1, ch), fs, backend="ffmpeg", warnings=warn_list
    )


def open_frame_source(
    path: str,
    *,
    block_frames: int = DEFAULT_BLOCK_FRAMES
) -> FrameSource:
    """
    Open an audio file for a single sequential pass over its frames.

    WAV, FLAC, AIFF and the other libsndfile formats are streamed; anything
    libsndfile refuses is decoded through ffmpeg when it is installed.
    Samples are full-scale int32 whatever the stored bit depth.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(path)
    try:
        return SoundfileFrameSource(path, block_frames=block_frames)
    except Exception as exc:
        try:
            source = _decode_ffmpeg(path)
        except (RuntimeError, ValueError) as ff_exc:
            raise ValueError(
                f"Could not open file: {path} (soundfile: {exc}; ffmpeg: {ff_exc})"
            ) from ff_exc
        source.info.warnings.insert(0, f"soundfile decode failed: {exc}")
        return source


def describe_stream(info: StreamInfo) -> dict:
    """Summarize stream metadata for display or reports."""
    return {
        "backend": info.backend,
        "sample_rate_hz": info.sample_rate,
        "channels": info.channels,
        "total_samples": info.num_frames,
        "duration_s": float(info.duration),
        "warnings": list(info.warnings),
    }
