import asyncio
import base64

import httpx
import pytest

from errors import ProviderError
from images import fetch_image, sniff_media_type, storage_path_from_url

STORAGE_URL = (
    "https://firebasestorage.googleapis.com/v0/b/trackmyhome.appspot.com/o/"
    "uploads%2Fuser-1%2Fkitchen%20shelf.jpg?alt=media&token=abc"
)
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def test_storage_path_is_decoded_from_download_url():
    assert storage_path_from_url(STORAGE_URL) == "uploads/user-1/kitchen shelf.jpg"


def test_foreign_urls_have_no_storage_path():
    assert storage_path_from_url("https://example.com/photo.jpg") is None


def test_media_type_from_header_then_magic_bytes():
    assert sniff_media_type(b"whatever", "image/png; charset=binary") == "image/png"
    assert sniff_media_type(PNG, "application/octet-stream") == "image/png"
    assert sniff_media_type(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"
    assert sniff_media_type(b"unknown") == "image/jpeg"


def test_fetch_image_encodes_body(mock_client):
    client = mock_client(lambda r: httpx.Response(200, content=PNG))
    image = asyncio.run(fetch_image(client, STORAGE_URL))
    assert base64.b64decode(image.base64) == PNG
    assert image.media_type == "image/png"
    assert image.storage_path == "uploads/user-1/kitchen shelf.jpg"


def test_fetch_image_http_error(mock_client):
    client = mock_client(lambda r: httpx.Response(404))
    with pytest.raises(ProviderError, match="HTTP 404") as info:
        asyncio.run(fetch_image(client, STORAGE_URL))
    assert info.value.status_code == 502


def test_fetch_image_transport_error(mock_client):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderError, match="connection refused"):
        asyncio.run(fetch_image(mock_client(handler), STORAGE_URL))


def test_fetch_image_empty_body(mock_client):
    with pytest.raises(ProviderError, match="empty"):
        asyncio.run(fetch_image(mock_client(lambda r: httpx.Response(200)), STORAGE_URL))
