import base64
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

import httpx

from config import IMAGE_DOWNLOAD_TIMEOUT_SECONDS
from errors import ProviderError
from log import get_logger

log = get_logger("images")

_MAGIC = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)
SUPPORTED_MEDIA_TYPES = frozenset(["image/jpeg", "image/png", "image/gif", "image/webp"])


@dataclass
class DownloadedImage:
    base64: str
    media_type: str
    storage_path: str | None


def storage_path_from_url(image_url: str) -> str | None:
    """Return the object path of a Firebase Storage download URL.

    Download URLs look like .../v0/b/<bucket>/o/<url-encoded path>?alt=media.
    Anything else yields None.
    """
    try:
        path = urlparse(image_url).path
    except ValueError:
        return None
    marker = "/o/"
    if marker not in path:
        return None
    encoded = path.split(marker, 1)[1]
    return unquote(encoded) or None


def sniff_media_type(data: bytes, content_type: str | None = None) -> str:
    if content_type:
        declared = content_type.split(";", 1)[0].strip().lower()
        if declared in SUPPORTED_MEDIA_TYPES:
            return declared
    for magic, media_type in _MAGIC:
        if data.startswith(magic):
            return media_type
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


async def fetch_image(client: httpx.AsyncClient, image_url: str) -> DownloadedImage:
    """Download an image and base64-encode it for the vision model."""
    try:
        response = await client.get(image_url, timeout=IMAGE_DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ProviderError("Image download", f"Failed to fetch image: HTTP {exc.response.status_code}")
    except httpx.HTTPError as exc:
        raise ProviderError("Image download", f"Failed to download image from URL: {exc}")

    data = response.content
    if not data:
        raise ProviderError("Image download", "Downloaded image is empty")

    storage_path = storage_path_from_url(image_url)
    if storage_path is None:
        log.warning("Image URL is not a storage download URL; the source image will not be deleted")

    media_type = sniff_media_type(data, response.headers.get("content-type"))
    log.info("Downloaded image: %d bytes (%s)", len(data), media_type)
    return DownloadedImage(
        base64=base64.b64encode(data).decode("ascii"),
        media_type=media_type,
        storage_path=storage_path,
    )
