"""
Template and image fetching over HTTP.

The template is fetched on the event loop before the pipeline starts; image
bytes are fetched synchronously from inside the worker, right before the image
generator needs them.
"""

import logging
from typing import Tuple

import httpx

from pdfsnap.core.errors import NetworkError
from pdfsnap.services.image_renderer import ImageFormat

logger = logging.getLogger(__name__)


def _check_response(url: str, resp: httpx.Response):
    if resp.status_code >= 400:
        raise NetworkError(f"GET {url} returned {resp.status_code}")


async def fetch_template(url: str, timeout: float = 30.0) -> bytes:
    try:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            resp = await client.get(url, timeout=timeout)
    except httpx.HTTPError as e:
        raise NetworkError(f"Failed to fetch template {url}: {e}") from e
    _check_response(url, resp)
    logger.info(f"[FETCH] Template {url}: {len(resp.content)} bytes")
    return resp.content


def fetch_image(url: str, timeout: float = 30.0) -> Tuple[bytes, ImageFormat]:
    """Image bytes plus the format named by the response Content-Type."""
    try:
        with httpx.Client(follow_redirects=True) as client:
            resp = client.get(url, timeout=timeout)
    except httpx.HTTPError as e:
        raise NetworkError(f"Failed to fetch image {url}: {e}") from e
    _check_response(url, resp)
    image_format = ImageFormat.from_mime(resp.headers.get("content-type"))
    logger.info(f"[FETCH] Image {url}: {len(resp.content)} bytes ({image_format.value})")
    return resp.content, image_format


def template_name(url: str) -> str:
    """Last path segment of a template URL."""
    path = httpx.URL(url).path
    return path.rstrip("/").rsplit("/", 1)[-1]
