from __future__ import annotations
import json
from pathlib import Path
from typing import Iterable


def build_report(analysers: Iterable) -> dict:
    """Collect the JSON fragments of analysers that have findings."""
    report: dict = {}
    for analyser in analysers:
        fragment = analyser.json()
        if fragment is None:
            continue
        key, value = fragment
        report[key] = value
    return report


def write_report(path: str | Path, report: dict) -> Path | None:
    """Write a report as indented JSON; an empty report writes nothing."""
    if not report:
        return None
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(report, indent=2), encoding="utf-8")
    return out
