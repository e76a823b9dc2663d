import base64
import io

import pytest
from PIL import Image

from kobo_bridge.settings import reload_settings

_ENV_VARS = (
    "KOBO_BRIDGE_CONFIG",
    "KOBO_SCHEMA_VERSION",
    "KOBO_DEPENDENT_ENCODING",
    "KOBO_RUNLOG_ENABLED",
    "KOBO_LOG_LEVEL",
    "RUNLOG_DIR",
    "RUNLOG_FILE",
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point every writable location at tmp_path and drop stray overrides."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("KOBO_OUTBOX_DIR", str(tmp_path / "outbox"))
    monkeypatch.setenv("KOBO_CACHE_DIR", str(tmp_path / "cache"))
    settings = reload_settings()
    yield settings
    monkeypatch.undo()
    reload_settings()


def _png_base64() -> str:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), "white").save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


@pytest.fixture
def image_data_url() -> str:
    return "data:image/jpg;base64," + _png_base64()


@pytest.fixture
def nested_dependents() -> list:
    """Scanner dependents: new shape, old shape, and a mostly empty entry."""
    return [
        {
            "dateOfBirth": {"originalString": {"latin": {"value": "01.02.2010"}}},
            "sex": {"latin": {"value": "F"}},
            "documentNumber": {"latin": {"value": "DEP-001"}},
            "fullName": {"latin": {"value": "Amina Zia"}},
        },
        {
            "dateOfBirth": {"originalDateStringResult": {"description": "03.04.2012"}},
            "sex": {"description": "M"},
            "documentNumber": {"description": "DEP-002"},
            "fullName": {"description": "Bilal Zia"},
        },
        {
            "dateOfBirth": {"originalString": {}},
            "fullName": {"latin": {}},
        },
    ]


@pytest.fixture
def send_payload() -> dict:
    """A complete send command without images or dependents."""
    return {
        "dateOfBirth": "12.05.1985",
        "CoAAddress": "Street 4 Karte Parwan",
        "province": "Kabul",
        "district": "District-4",
        "village": "Parwan",
        "documentNumber": "1400-0101-12345",
        "fullName": "Ahmad Zia",
        "fathersName": "Karim",
        "age": 39,
        "gender": "M",
        "dateOfIssue": "01.01.2020",
        "documentAdditionalNumber": "A-77",
        "dateOfExpiry": "01.01.2030",
    }
