"""Console output: frame labels, timestamps, progress bar and log setup."""
from __future__ import annotations
import logging
import sys
import time
from typing import Callable, TextIO

import numpy as np

LOGGER_NAME = "pcmqc"


def fmt_frame(frame: int, digits: int) -> str:
    """Zero-pad a frame index to a fixed number of digits."""
    return f"{int(frame):0{int(digits)}d}"


def frame_to_time(frame: int, sample_rate: int) -> str:
    """
    Format a frame index as HH:MM:SS.mmm.

    The division runs in single precision so long streams show the same
    rounding in event lines and in the JSON report.
    """
    seconds = np.float32(frame) / np.float32(sample_rate)
    hours = np.floor(seconds / np.float32(3600.0))
    minutes = np.floor(np.fmod(seconds, np.float32(3600.0)) / np.float32(60.0))
    secs = np.fmod(seconds, np.float32(60.0))
    return f"{float(hours):02.0f}:{float(minutes):02.0f}:{float(secs):06.3f}"


def f32(value: float) -> float:
    """Round a value to single precision, keeping its shortest decimal form."""
    return float(str(np.float32(value)))


class ProgressBar:
    """Single-line progress bar redrawn in place on a terminal stream."""

    def __init__(
        self,
        total: int,
        *,
        stream: TextIO | None = None,
        width: int = 40,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.total = max(0, int(total))
        self.pos = 0
        self._stream = stream if stream is not None else sys.stderr
        self._width = max(4, int(width))
        self._clock = clock
        self._started = clock()
        self._step = max(1, self.total // 1000)
        self._next_draw = 0
        self._visible = False
        self._finished = False

    def render(self) -> str:
        elapsed = int(self._clock() - self._started)
        h, rem = divmod(elapsed, 3600)
        m, s = divmod(rem, 60)
        frac = (self.pos / self.total) if self.total else 1.0
        frac = min(1.0, max(0.0, frac))
        filled = int(frac * self._width)
        if filled >= self._width:
            bar = "#" * self._width
        else:
            bar = "#" * filled + ">" + "-" * (self._width - filled - 1)
        return (
            f"[{h:02d}:{m:02d}:{s:02d}] [{bar}] "
            f"{frac * 100.0:.2f}% ({self.pos}/{self.total})"
        )

    def inc(self, n: int = 1) -> None:
        self.pos += n
        if self.pos >= self._next_draw:
            self._next_draw = self.pos + self._step
            self.redraw()

    def redraw(self) -> None:
        if self._finished:
            return
        self._stream.write("\r" + self.render())
        self._stream.flush()
        self._visible = True

    def clear(self) -> None:
        if not self._visible:
            return
        self._stream.write("\r\x1b[2K")
        self._stream.flush()
        self._visible = False

    def finish(self) -> None:
        if self._finished:
            return
        self.redraw()
        self._stream.write("\n")
        self._stream.flush()
        self._visible = False
        self._finished = True


class _ProgressAwareHandler(logging.StreamHandler):
    """Clear the progress line before a record and redraw it afterwards."""

    def __init__(self, stream: TextIO, progress: ProgressBar | None) -> None:
        super().__init__(stream)
        self.progress = progress

    def emit(self, record: logging.LogRecord) -> None:
        if self.progress is not None:
            self.progress.clear()
        super().emit(record)
        if self.progress is not None:
            self.progress.redraw()


class _EventFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        if record.levelno >= logging.WARNING:
            return f"{record.levelname.capitalize()}: {msg}"
        return msg


def configure_logging(
    *,
    debug: bool = False,
    progress: ProgressBar | None = None,
    stream: TextIO | None = None
) -> logging.Logger:
    """Install the console handler on the package logger and return it."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, _ProgressAwareHandler):
            logger.removeHandler(handler)
    handler = _ProgressAwareHandler(
        stream if stream is not None else sys.stdout, progress
    )
    handler.setFormatter(_EventFormatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
    return logger
