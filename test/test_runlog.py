import json
from datetime import datetime
from pathlib import Path

import pytest

from kobo_bridge.tools.runlog import persist_runlog, redact_bundle

BUNDLE = {"fullName": "Ahmad Zia", "age": 39, "documentNumber": "1400-0101-12345"}


def _read_lines(path: Path) -> list:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


def test_redact_bundle_keeps_structure_only():
    summary = redact_bundle(BUNDLE)
    assert summary == {
        "fullName": {"type": "str", "length": 9},
        "age": {"type": "int"},
        "documentNumber": {"type": "str", "length": 15},
    }
    assert "Ahmad" not in json.dumps(summary)


def test_persist_appends_redacted_entries(tmp_path):
    out_dir = tmp_path / "runlogs"

    persist_runlog(BUNDLE, location="/x/outbox/result_1.json", out_dir=out_dir, filename="log.jsonl")
    entry = persist_runlog({}, event="retry", out_dir=out_dir, filename="log.jsonl")

    path = out_dir / "log.jsonl"
    lines = _read_lines(path)
    assert len(lines) == 2
    assert lines[0]["key_count"] == 3
    assert lines[0]["location"] == "result_1.json"
    assert lines[1] == entry
    assert lines[1]["event"] == "retry"
    assert datetime.fromisoformat(lines[0]["logged_at"].replace("Z", "+00:00")).microsecond == 0
    text = path.read_text(encoding="utf-8")
    assert "Ahmad Zia" not in text
    assert "1400-0101-12345" not in text


def test_env_overrides_arguments(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("RUNLOG_DIR", str(tmp_path / "envlogs"))
    monkeypatch.setenv("RUNLOG_FILE", "env.jsonl")

    persist_runlog(BUNDLE, out_dir=tmp_path / "ignored", filename="ignored.jsonl")

    assert (tmp_path / "envlogs" / "env.jsonl").exists()
    assert not (tmp_path / "ignored").exists()
