import json

import pytest

from kobo_bridge.bridge import GENERIC_FAILURE_MESSAGE, KoboBridge
from kobo_bridge.errors import MissingRequiredFieldsError, SendFailedError, TransportError
from kobo_bridge.settings import load_settings
from kobo_bridge.tools.send_data import PROCESSING_ERROR, handle_send_data, send_data
from kobo_bridge.tools.transport import OutboxTransport


class _BrokenTransport:
    def deliver(self, message):
        raise TransportError("no host")


def test_handle_send_data_acknowledges(isolated_settings, send_payload):
    assert handle_send_data(send_payload) == {"response": "Data has been sent successfully"}
    assert len(OutboxTransport(isolated_settings.outbox_dir).pending()) == 1


@pytest.mark.parametrize("field", ["documentNumber", "fullName", "age", "gender", "dateOfBirth"])
def test_each_required_field_is_checked(send_payload, field):
    payload = dict(send_payload)
    payload.pop(field)
    with pytest.raises(MissingRequiredFieldsError) as ei:
        handle_send_data(payload)
    assert ei.value.fields == [field]


def test_failed_bridge_outcome_is_raised(send_payload):
    bridge = KoboBridge(transport=_BrokenTransport())
    with pytest.raises(SendFailedError) as ei:
        handle_send_data(json.dumps(send_payload), bridge=bridge)
    assert str(ei.value) == GENERIC_FAILURE_MESSAGE


def test_tool_success_func_and_run(send_payload):
    via_func = json.loads(send_data.func(json.dumps(send_payload)))
    via_run = json.loads(send_data.run(json.dumps(send_payload)))
    assert via_func == via_run == {"response": "Data has been sent successfully"}


def test_tool_reports_missing_parameters(isolated_settings, send_payload):
    payload = dict(send_payload, fullName=None, age=None)

    result = json.loads(send_data.func(json.dumps(payload)))

    assert result == {"error": "Missing required parameters", "missing": ["fullName", "age"]}
    assert OutboxTransport(isolated_settings.outbox_dir).pending() == []


@pytest.mark.parametrize("raw", ["{not json", json.dumps({"fullName": "X", "age": "old"})])
def test_tool_reports_processing_errors(raw):
    result = json.loads(send_data.func(raw))
    assert result["error"] == PROCESSING_ERROR
    assert result["detail"]


def test_tool_reports_delivery_failure(send_payload, monkeypatch):
    monkeypatch.setattr(
        "kobo_bridge.tools.send_data.KoboBridge",
        lambda: KoboBridge(transport=_BrokenTransport()),
    )
    result = json.loads(send_data.func(json.dumps(send_payload)))
    assert result == {"error": PROCESSING_ERROR, "detail": GENERIC_FAILURE_MESSAGE}


def test_tool_reports_configuration_errors(send_payload, monkeypatch):
    monkeypatch.setenv("KOBO_DEPENDENT_ENCODING", "auto")
    load_settings.cache_clear()

    result = json.loads(send_data.func(json.dumps(send_payload)))

    assert result["error"] == PROCESSING_ERROR
    assert "auto" in result["detail"]
