from __future__ import annotations

import json
from types import SimpleNamespace

import numpy as np
import pytest
import soundfile as sf

from pcmqc.cli.main import (
    EXIT_BAD_ARGS,
    EXIT_DECODE_ERROR,
    EXIT_INTERNAL_ERROR,
    cmd_analyze,
    cmd_inspect,
    main,
)

FS = 8000


def _args(path, **overrides) -> SimpleNamespace:
    args = dict(
        input=str(path),
        silence=None,
        lufs=None,
        silence_percentage=None,
        underrun=None,
        samples=None,
        config=None,
        json=None,
        debug=False,
        no_progress=True,
    )
    args.update(overrides)
    return SimpleNamespace(**args)


def _write_wav(tmp_path, seconds_tone: int, seconds_zero: int, fs: int = FS):
    t = np.arange(seconds_tone * fs) / fs
    tone = 0.25 * np.sin(2 * np.pi * 440.0 * t) + 0.01
    x = np.concatenate([tone, np.zeros(seconds_zero * fs)])
    path = tmp_path / "input.wav"
    sf.write(path, x, fs, subtype="PCM_16")
    return path


def test_no_analyser_enabled_is_user_error(tmp_path, capsys):
    path = _write_wav(tmp_path, 1, 0)
    assert cmd_analyze(_args(path)) == EXIT_BAD_ARGS
    assert "Neither underrun nor silence detection is active" in capsys.readouterr().err


def test_missing_input(tmp_path, capsys):
    code = cmd_analyze(_args(tmp_path / "missing.wav", underrun=True))
    assert code == EXIT_DECODE_ERROR
    assert "Could not open file" in capsys.readouterr().err


def test_invalid_threshold_is_user_error(tmp_path):
    path = _write_wav(tmp_path, 1, 0)
    assert cmd_analyze(_args(path, underrun=True, samples=0)) == EXIT_BAD_ARGS


def test_clean_file_exits_zero_without_report(tmp_path, capsys):
    path = _write_wav(tmp_path, 2, 0)
    report = tmp_path / "report.json"
    code = cmd_analyze(_args(path, silence=True, underrun=True, json=str(report)))
    assert code == 0
    assert not report.exists()
    out = capsys.readouterr().out
    assert f"[+] sample rate:        {FS}" in out
    assert "[+] silence threshold:  -70.0 LUFS-S" in out
    assert "[+] underrun threshold: 16 samples" in out


def test_trailing_zeros_report_underrun_and_silence(tmp_path, capsys):
    path = _write_wav(tmp_path, 1, 2)
    report = tmp_path / "report.json"
    code = cmd_analyze(_args(path, silence=True, underrun=True, json=str(report)))
    assert code == 0b01

    data = json.loads(report.read_text(encoding="utf-8"))
    assert set(data) == {"silence", "underruns"}
    assert data["silence"]["threshold"] == -70.0
    seg = data["silence"]["results"][0]
    assert seg["startSample"] == 2 * FS - 1
    assert seg["endSample"] == 3 * FS
    assert seg["durationSamples"] == FS + 1
    run = data["underruns"]["results"][0]
    assert (run["startSample"], run["endSample"]) == (FS, 3 * FS)

    out = capsys.readouterr().out
    assert "SILENCE START" in out
    assert "UNDERRUN     : CH:0 - 16000 samples" in out
    assert "Wrote JSON output to" in out


def test_mostly_silent_file_sets_both_bits(tmp_path):
    path = _write_wav(tmp_path, 0, 3)
    code = cmd_analyze(
        _args(path, silence=True, underrun=True, silence_percentage=50.0)
    )
    assert code == 0b11


def test_config_file_enables_analysers(tmp_path):
    path = _write_wav(tmp_path, 1, 2)
    cfg = tmp_path / "pcmqc.json"
    cfg.write_text(json.dumps({"underrun": {"enabled": True, "min_samples": 8}}), encoding="utf-8")
    assert cmd_analyze(_args(path, config=str(cfg))) == 0b01


def test_meter_init_failure_is_fatal(tmp_path, capsys):
    path = _write_wav(tmp_path, 1, 0, fs=2000)
    assert cmd_analyze(_args(path, silence=True)) == EXIT_INTERNAL_ERROR
    assert "Could not initialize loudness meter" in capsys.readouterr().err


def test_inspect_prints_stream_info(tmp_path, capsys):
    path = _write_wav(tmp_path, 1, 1)
    assert cmd_inspect(SimpleNamespace(input=str(path))) == 0
    info = json.loads(capsys.readouterr().out)
    assert info["sample_rate_hz"] == FS
    assert info["channels"] == 1
    assert info["total_samples"] == 2 * FS


def test_usage_errors_do_not_alias_verdict_bits():
    with pytest.raises(SystemExit) as exc:
        main(["analyze"])
    assert exc.value.code == EXIT_BAD_ARGS


def test_misspelled_config_key_is_user_error(tmp_path, capsys):
    path = _write_wav(tmp_path, 1, 0)
    cfg = tmp_path / "pcmqc.json"
    cfg.write_text(json.dumps({"underrun": {"enabled": True, "min_sample": 8}}), encoding="utf-8")
    assert cmd_analyze(_args(path, config=str(cfg))) == EXIT_BAD_ARGS
    assert "min_sample" in capsys.readouterr().err
