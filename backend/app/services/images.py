"""Image proxy: URL building, path normalization, two-attempt fetch, placeholders."""
from __future__ import annotations
import asyncio
import logging
import os
from dataclasses import dataclass
from typing import AsyncIterator
from urllib.parse import quote_plus, unquote, urlsplit

import aiohttp

from app.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

PROXY_PREFIX = "/api/v1/images"

TMDB_SIZES = {"w92", "w154", "w185", "w342", "w500", "w780", "w1280", "original"}
KP_SIZES = {"kp", "kp_small", "kp_big"}
KP_POSTER_URL = "https://kinopoiskapiunofficial.tech/images/posters/{size}/{id}.jpg"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118.0 Safari/537.36"
)
IMAGE_ACCEPT = "image/avif,image/webp,image/apng,image/*,*/*;q=0.8"
IMAGE_ACCEPT_LANGUAGE = "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7"

UPSTREAM_CACHE_CONTROL = "public, max-age=31536000"
PLACEHOLDER_CACHE_CONTROL = "public, max-age=3600"

MAX_IMAGE_BYTES = 10 * 1024 * 1024
CHUNK_SIZE = 65536

PLACEHOLDER_PATHS = (
    "./assets/placeholder.jpg",
    "./public/images/placeholder.jpg",
    "./static/placeholder.jpg",
)

SVG_PLACEHOLDER = """<svg width="300" height="450" xmlns="http://www.w3.org/2000/svg">
  <rect width="100%" height="100%" fill="#f0f0f0"/>
  <text x="50%" y="50%" dominant-baseline="middle" text-anchor="middle" font-family="Arial, sans-serif" font-size="16" fill="#666">Изображение не найдено</text>
</svg>"""

_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def build_image_proxy_url(path: str | None, size: str = "w500") -> str:
    """Rewrite an upstream image reference to this service's proxy route.

    Catalog-relative paths keep their shape, absolute URLs are
    percent-encoded into a single path segment.
    """
    if not path:
        return ""
    size = size or "w500"
    if path.startswith("http://") or path.startswith("https://"):
        return f"{PROXY_PREFIX}/{size}/{quote_plus(path)}"
    return f"{PROXY_PREFIX}/{size}/{path.lstrip('/')}"


def normalize_image_path(path: str) -> str:
    decoded = unquote(path).strip()
    if decoded.startswith("//"):
        return "https:" + decoded
    for scheme in ("https", "http"):
        broken = f"{scheme}:/"
        if decoded.startswith(broken) and not decoded.startswith(f"{scheme}://"):
            return f"{scheme}://" + decoded[len(broken):]
    return decoded


def normalize_size(size: str) -> str:
    if size in TMDB_SIZES or size in KP_SIZES:
        return size
    return "original"


def resolve_upstream_url(size: str, path: str, image_base: str) -> str:
    """Upstream URL for a proxy request (size already normalized)."""
    target = normalize_image_path(path)
    if target.startswith("http://") or target.startswith("https://"):
        return target
    if size in KP_SIZES:
        kp_id = target.strip("/")
        if kp_id.endswith(".jpg"):
            kp_id = kp_id[: -len(".jpg")]
        return KP_POSTER_URL.format(size=size, id=kp_id)
    return f"{image_base.rstrip('/')}/{size}/{target.lstrip('/')}"


def referer_for(url: str) -> str | None:
    parts = urlsplit(url)
    host = parts.netloc.lower()
    if "kinopoisk" in host or "yandex" in host:
        return "https://www.kinopoisk.ru/"
    if parts.scheme and parts.netloc:
        return f"{parts.scheme}://{parts.netloc}/"
    return None


def is_placeholder_request(path: str) -> bool:
    return path.strip("/").rsplit("/", 1)[-1] == "placeholder.jpg"


@dataclass
class ImagePayload:
    body: bytes
    content_type: str
    cache_control: str
    chunks: AsyncIterator[bytes] | None = None

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        if self.chunks is None:
            yield self.body
            return
        async for chunk in self.chunks:
            yield chunk


def load_placeholder(paths: tuple[str, ...] = PLACEHOLDER_PATHS) -> ImagePayload:
    for candidate in paths:
        if not os.path.isfile(candidate):
            continue
        try:
            with open(candidate, "rb") as fh:
                body = fh.read()
        except OSError as e:
            logger.warning(f"Placeholder {candidate} unreadable: {e}")
            continue
        ext = os.path.splitext(candidate)[1].lower()
        return ImagePayload(body, _CONTENT_TYPES.get(ext, "image/jpeg"), PLACEHOLDER_CACHE_CONTROL)
    return ImagePayload(SVG_PLACEHOLDER.encode("utf-8"), "image/svg+xml", PLACEHOLDER_CACHE_CONTROL)


class ImageProxy(UpstreamClient):
    service_name = "Images"
    attempts = 2

    def __init__(
        self,
        image_base: str,
        timeout: float = 12,
        placeholder_paths: tuple[str, ...] = PLACEHOLDER_PATHS,
        max_bytes: int = MAX_IMAGE_BYTES,
    ):
        super().__init__("", timeout)
        self.max_bytes = max_bytes
        self.image_base = image_base.rstrip("/")
        self.placeholder_paths = placeholder_paths

    def default_headers(self) -> dict[str, str]:
        return {}

    def build_headers(self, url: str, attempt: int, user_agent: str | None) -> dict[str, str]:
        headers = {
            "Accept": IMAGE_ACCEPT,
            "Accept-Language": IMAGE_ACCEPT_LANGUAGE,
            "User-Agent": user_agent or DEFAULT_USER_AGENT,
        }
        if attempt == 0:
            referer = referer_for(url)
            if referer:
                headers["Referer"] = referer
        return headers

    async def _fetch_once(self, url: str, headers: dict[str, str]) -> tuple[int, AsyncIterator[bytes] | None, str]:
        """Open the upstream response; on success the body is left unread for streaming."""
        resp = await self.session.get(url, headers=headers)
        length = resp.content_length
        if resp.status != 200 or length == 0:
            resp.release()
            return resp.status, None, ""
        if length is not None and length > self.max_bytes:
            logger.warning(f"Image from {urlsplit(url).netloc} is {length} bytes, over the {self.max_bytes} limit")
            resp.release()
            return resp.status, None, ""
        return resp.status, self._stream(resp), resp.headers.get("Content-Type", "")

    async def _stream(self, resp: aiohttp.ClientResponse) -> AsyncIterator[bytes]:
        received = 0
        try:
            async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
                received += len(chunk)
                if received > self.max_bytes:
                    logger.warning(f"Image from {resp.url.host} cut off at {self.max_bytes} bytes")
                    break
                yield chunk
        finally:
            resp.release()

    async def fetch(self, url: str, user_agent: str | None = None) -> ImagePayload | None:
        for attempt in range(self.attempts):
            headers = self.build_headers(url, attempt, user_agent)
            try:
                status, chunks, content_type = await self._fetch_once(url, headers)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(f"Image fetch attempt {attempt} failed for {urlsplit(url).netloc}: {e.__class__.__name__}")
                continue
            if status == 200 and chunks is not None:
                return ImagePayload(b"", content_type or "image/jpeg", UPSTREAM_CACHE_CONTROL, chunks)
            logger.info(f"Image fetch attempt {attempt} got {status} from {urlsplit(url).netloc}")
        return None

    async def get(self, size: str, path: str, user_agent: str | None = None) -> ImagePayload:
        if is_placeholder_request(path):
            return load_placeholder(self.placeholder_paths)
        size = normalize_size(size)
        url = resolve_upstream_url(size, path, self.image_base)
        payload = await self.fetch(url, user_agent)
        if payload is None:
            return load_placeholder(self.placeholder_paths)
        return payload
