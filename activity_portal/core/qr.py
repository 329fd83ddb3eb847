from __future__ import annotations
from urllib.parse import quote

from .config import get_settings
from ..schemas import QrLinks
settings = get_settings()

# QR images are rendered by a third-party API; we only build its URL.
PREVIEW_SIZE = 200
DOWNLOAD_SIZE = 400

def checkin_url(slug: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}/checkin/{slug}"

def qr_image_url(data: str, size: int = PREVIEW_SIZE) -> str:
    return f"{settings.qr_api_url}?size={size}x{size}&data={quote(data, safe='')}"

def qr_links(slug: str | None) -> QrLinks | None:
    if not slug:
        return None
    url = checkin_url(slug)
    return QrLinks(
        checkin_url=url,
        image_url=qr_image_url(url, PREVIEW_SIZE),
        download_url=qr_image_url(url, DOWNLOAD_SIZE),
    )
