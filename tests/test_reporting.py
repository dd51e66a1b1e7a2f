from __future__ import annotations

import json

from pcmqc.reporting.json_report import build_report, write_report


class _Stub:
    def __init__(self, fragment):
        self.fragment = fragment

    def json(self):
        return self.fragment


def test_build_report_omits_analysers_without_findings():
    report = build_report([
        _Stub(None),
        _Stub(("silence", {"results": [{"start": 1.0}], "threshold": -70.0})),
    ])
    assert list(report) == ["silence"]


def test_write_report(tmp_path):
    report = {"underruns": {"results": [], "threshold": 16}}
    out = write_report(tmp_path / "nested" / "report.json", report)
    assert out is not None
    assert json.loads(out.read_text(encoding="utf-8")) == report


def test_empty_report_is_not_written(tmp_path):
    path = tmp_path / "report.json"
    assert write_report(path, {}) is None
    assert not path.exists()
