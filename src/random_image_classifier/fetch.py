"""Fetch a random image over HTTP."""
from __future__ import annotations

import io
import logging
from typing import Optional

import httpx
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_URL = "https://random.imagecdn.app/{width}/{height}"


class FetchError(RuntimeError):
    """The image could not be downloaded or decoded."""


def image_url(template: str, width: int, height: int) -> str:
    return template.format(width=width, height=height)


def decode_image(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise FetchError(f"Could not decode image ({len(data)} bytes): {e}") from e


def fetch_random_image(
    template: str = DEFAULT_IMAGE_URL,
    width: int = 128,
    height: int = 128,
    client: Optional[httpx.Client] = None,
    timeout: Optional[float] = None,
) -> Image.Image:
    """GET one image from ``template`` and decode it to RGB.

    Single attempt; no retry. Any transport, HTTP status or decode failure is
    raised as :class:`FetchError`.
    """
    url = image_url(template, width, height)
    logger.debug("GET %s", url)
    try:
        if client is None:
            resp = httpx.get(url, timeout=timeout, follow_redirects=True)
        else:
            # the client's own timeout applies unless one is given
            if timeout is None:
                resp = client.get(url, follow_redirects=True)
            else:
                resp = client.get(url, timeout=timeout, follow_redirects=True)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise FetchError(f"Could not fetch {url}: {e}") from e
    return decode_image(resp.content)
