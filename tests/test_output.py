from __future__ import annotations

import io
import logging

from pcmqc.output import (
    ProgressBar,
    configure_logging,
    f32,
    fmt_frame,
    frame_to_time,
)


def test_fmt_frame_zero_pads():
    assert fmt_frame(7, 5) == "00007"
    assert fmt_frame(12345, 3) == "12345"


def test_frame_to_time_components():
    assert frame_to_time(0, 48000) == "00:00:00.000"
    assert frame_to_time(48000 * 61 + 24000, 48000) == "00:01:01.500"
    assert frame_to_time(48000 * 3600 * 2, 48000) == "02:00:00.000"


def test_f32_keeps_shortest_single_precision_form():
    assert f32(0.1) == 0.1
    assert f32(1 / 3) == 0.33333334


def test_progress_bar_render_and_finish():
    stream = io.StringIO()
    bar = ProgressBar(10, stream=stream, width=10, clock=lambda: 0.0)
    for _ in range(5):
        bar.inc()
    assert bar.render() == "[00:00:00] [#####>----] 50.00% (5/10)"
    bar.finish()
    out = stream.getvalue()
    assert out.endswith("(5/10)\n")


def test_progress_bar_full():
    bar = ProgressBar(4, stream=io.StringIO(), width=8, clock=lambda: 0.0)
    bar.inc(4)
    assert bar.render() == "[00:00:00] [########] 100.00% (4/4)"


def test_logging_clears_progress_line():
    progress_stream = io.StringIO()
    log_stream = io.StringIO()
    bar = ProgressBar(100, stream=progress_stream, clock=lambda: 0.0)
    logger = configure_logging(progress=bar, stream=log_stream)
    bar.inc()
    logger.info("[+] channels:           2")
    logger.warning("something odd")
    assert log_stream.getvalue().splitlines() == [
        "[+] channels:           2",
        "Warning: something odd",
    ]
    assert "\x1b[2K" in progress_stream.getvalue()
    assert logger.level == logging.INFO


def test_configure_logging_debug_level():
    logger = configure_logging(debug=True, stream=io.StringIO())
    assert logger.isEnabledFor(logging.DEBUG)
    configure_logging(stream=io.StringIO())
    assert len(logger.handlers) == 1


def test_event_lines_not_repeated_by_root_handler():
    root = logging.getLogger()
    root_stream = io.StringIO()
    root_handler = logging.StreamHandler(root_stream)
    root.addHandler(root_handler)
    try:
        log_stream = io.StringIO()
        logger = configure_logging(stream=log_stream)
        logger.info("[00] SILENCE START")
        logging.getLogger("pcmqc.analysers.silence").info("[01] SILENCE END")
    finally:
        root.removeHandler(root_handler)
    assert log_stream.getvalue().splitlines() == ["[00] SILENCE START", "[01] SILENCE END"]
    assert root_stream.getvalue() == ""
