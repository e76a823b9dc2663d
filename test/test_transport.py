import json
from pathlib import Path

import pytest

from kobo_bridge.errors import TransportError
from kobo_bridge.tools.transport import RESULT_OK, OutboxTransport, build_result


def test_build_result_skips_null_uris():
    msg = build_result({"fullName": "X", "age": 3}, ["file:///a.jpg", None, ""])
    assert msg.result_code == RESULT_OK
    assert msg.clip_uris == ["file:///a.jpg"]
    assert msg.extras == {"fullName": "X", "age": 3}


def test_deliver_and_receive(tmp_path):
    transport = OutboxTransport(tmp_path / "outbox")
    msg = build_result({"fullName": "X", "age": 3, "dependentCount": 0})

    location = transport.deliver(msg)

    path = Path(location)
    assert path.parent == tmp_path / "outbox"
    assert json.loads(path.read_text(encoding="utf-8"))["result_code"] == RESULT_OK
    assert transport.receive(path) == msg
    assert transport.pending() == [path]
    # no temp files left behind
    assert [p.name for p in (tmp_path / "outbox").iterdir()] == [path.name]


def test_keeps_int_values_as_ints(tmp_path):
    transport = OutboxTransport(tmp_path)
    received = transport.receive(transport.deliver(build_result({"age": 39, "gender": "39"})))
    assert received.extras["age"] == 39
    assert received.extras["gender"] == "39"


def test_deliver_into_unusable_dir_raises(tmp_path):
    blocker = tmp_path / "outbox"
    blocker.write_text("I am a file", encoding="utf-8")

    with pytest.raises(TransportError):
        OutboxTransport(blocker).deliver(build_result({}))


def test_receive_malformed(tmp_path):
    bad = tmp_path / "result_bad.json"
    bad.write_text("{nope", encoding="utf-8")
    with pytest.raises(TransportError):
        OutboxTransport(tmp_path).receive(bad)
    with pytest.raises(TransportError):
        OutboxTransport(tmp_path).receive(tmp_path / "missing.json")


def test_pending_empty(tmp_path):
    assert OutboxTransport(tmp_path / "never-created").pending() == []
