import base64

import pytest

from kobo_bridge.errors import ImagePayloadError
from kobo_bridge.tools.images import (
    FRONT_IMAGE_FILE,
    base64_to_file,
    decode_image_payload,
    image_reference,
    uri_for_file,
)


def test_base64_to_file_from_data_url(tmp_path, image_data_url):
    dest = base64_to_file(image_data_url, FRONT_IMAGE_FILE, tmp_path / "cache")

    assert dest == tmp_path / "cache" / FRONT_IMAGE_FILE
    assert dest.read_bytes().startswith(b"\x89PNG")


def test_bare_base64_is_accepted(image_data_url):
    bare = image_data_url.split(",", 1)[1]
    assert decode_image_payload(bare).startswith(b"\x89PNG")


def test_uri_for_file(tmp_path):
    path = tmp_path / "x.jpg"
    assert uri_for_file(path) == path.resolve().as_uri()
    assert uri_for_file(path).startswith("file://")


@pytest.mark.parametrize(
    "payload",
    [
        "data:image/jpg;base64,!!!not-base64!!!",
        "data:image/jpg;base64",
        "data:image/jpg;base64,",
        base64.b64encode(b"definitely-not-an-image").decode(),
    ],
)
def test_invalid_payloads(payload, tmp_path):
    with pytest.raises(ImagePayloadError):
        base64_to_file(payload, FRONT_IMAGE_FILE, tmp_path)
    assert not (tmp_path / FRONT_IMAGE_FILE).exists()


def test_image_reference(tmp_path, image_data_url):
    assert image_reference(None, FRONT_IMAGE_FILE, tmp_path) is None
    assert image_reference("", FRONT_IMAGE_FILE, tmp_path) is None

    uri = image_reference(image_data_url, FRONT_IMAGE_FILE, tmp_path)
    assert uri == (tmp_path / FRONT_IMAGE_FILE).resolve().as_uri()
