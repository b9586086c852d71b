"""Streaming-embed providers and the HTML page that hosts their players."""
from __future__ import annotations
import html
import logging
import re
from dataclasses import dataclass
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel

from app.exceptions import InvalidInputError, MisconfigurationError, NotFoundError, UpstreamError
from app.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/113.0.0.0 Safari/537.36"
)

# Token sits in the iframe page as /<anything>/<token>/iframe
IFRAME_TOKEN_RE = re.compile(r"/[^/]+/([^/]+)/iframe")
IFRAME_SRC_RE = re.compile(r"""<iframe\b[^>]*?\bsrc\s*=\s*["']([^"']+)["']""", re.IGNORECASE)

EXTERNAL_ID_KINDS = ("kp", "imdb")
DEFAULT_TRANSLATION = "66"


class StreamResult(BaseModel):
    success: bool
    stream_url: str | None = None
    provider: str
    type: str = "direct"
    error: str | None = None


@dataclass
class Embed:
    url: str = ""


def extract_iframe_token(page: str) -> str | None:
    match = IFRAME_TOKEN_RE.search(page or "")
    return match.group(1) if match else None


def extract_iframe_src(snippet: str) -> str | None:
    """URL of the first iframe in a provider HTML snippet."""
    match = IFRAME_SRC_RE.search(snippet or "")
    return html.unescape(match.group(1)).strip() if match else None


def with_episode(url: str, season: str | None, episode: str | None, **extra: str) -> str:
    if not season or not episode:
        return url
    params = {"season": season, "episode": episode, **extra}
    query = "&".join(f"{k}={quote(str(v), safe='')}" for k, v in params.items())
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"


def validate_id_kind(id_type: str) -> str:
    kind = (id_type or "").lower()
    if kind not in EXTERNAL_ID_KINDS:
        raise InvalidInputError("id_type must be 'kp' or 'imdb'")
    return kind


PLAYER_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8"/>
<meta name="viewport" content="width=device-width, initial-scale=1"/>
<title>{title}</title>
<style>
html,body{{margin:0;height:100%;background:#000;overflow:hidden;}}
#player{{position:relative;width:100%;height:100%;}}
#player iframe{{border:none;width:100%;height:100%;}}
#shield{{position:absolute;inset:0;z-index:2;cursor:pointer;}}
#fullscreen{{position:absolute;right:12px;bottom:12px;z-index:3;padding:6px 10px;border:0;border-radius:4px;background:rgba(0,0,0,.6);color:#fff;font:14px sans-serif;cursor:pointer;}}
</style>
</head>
<body>
<div id="player">{frame}<div id="shield"></div><button id="fullscreen" type="button">&#x26F6;</button></div>
<script>
document.getElementById("shield").addEventListener("click",function(){{this.remove();}});
document.getElementById("fullscreen").addEventListener("click",function(){{
var el=document.getElementById("player");
if(document.fullscreenElement){{document.exitFullscreen();}}else if(el.requestFullscreen){{el.requestFullscreen();}}
}});
</script>
</body>
</html>"""


def render_player_page(embed: Embed | str, title: str) -> str:
    if isinstance(embed, str):
        embed = Embed(url=embed)
    frame = (
        f'<iframe src="{html.escape(embed.url, quote=True)}" allowfullscreen '
        f'allow="autoplay; fullscreen; encrypted-media" loading="lazy"></iframe>'
    )
    return PLAYER_PAGE.format(title=html.escape(title), frame=frame)


class AllohaPlayer(UpstreamClient):
    service_name = "Alloha"

    def __init__(self, token: str, base_url: str = "https://api.alloha.tv", timeout: float = 8):
        super().__init__(base_url, timeout)
        self.token = token

    async def embed(
        self,
        id_type: str,
        media_id: str,
        season: str | None = None,
        episode: str | None = None,
        translation: str | None = None,
    ) -> Embed:
        if not self.token:
            raise MisconfigurationError("ALLOHA_TOKEN")
        kind = validate_id_kind(id_type)
        data = await self._get("/", {"token": self.token, kind: media_id})
        iframe = ((data or {}).get("data") or {}).get("iframe") if isinstance(data, dict) else None
        if not isinstance(data, dict) or data.get("status") != "success" or not iframe:
            raise NotFoundError("Video not found")
        iframe = iframe.replace('\\"', '"').replace("\\'", "'")
        if "<" in iframe:
            iframe = extract_iframe_src(iframe) or ""
        if not iframe.startswith(("https://", "http://", "//")):
            raise NotFoundError("Video not found")
        return Embed(url=with_episode(iframe, season, episode, translation=translation or DEFAULT_TRANSLATION))


class LumexPlayer:
    def __init__(self, base_url: str):
        self.base_url = base_url

    def embed(self, id_type: str, media_id: str, season: str | None = None, episode: str | None = None) -> Embed:
        if not self.base_url:
            raise MisconfigurationError("LUMEX_URL")
        if (id_type or "").lower() != "imdb":
            raise InvalidInputError("Lumex supports only imdb ids")
        url = f"{self.base_url}?imdb_id={quote(media_id, safe='')}"
        return Embed(url=with_episode(url, season, episode))


class VibixPlayer(UpstreamClient):
    service_name = "Vibix"

    def __init__(self, host: str, token: str, timeout: float = 8):
        super().__init__(host, timeout)
        self.token = token

    def default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self.token}"}

    async def embed(self, id_type: str, media_id: str, season: str | None = None, episode: str | None = None) -> Embed:
        if not self.token:
            raise MisconfigurationError("VIBIX_TOKEN")
        kind = validate_id_kind(id_type)
        data = await self._get(f"api/v1/publisher/videos/{kind}/{quote(media_id, safe='')}")
        if not isinstance(data, dict) or data.get("id") is None or not data.get("iframe_url"):
            raise NotFoundError("Video not found")
        return Embed(url=with_episode(data["iframe_url"], season, episode))


def vidsrc_url(media_type: str, imdb_id: str, season: str | None = None, episode: str | None = None) -> str:
    if media_type == "movie":
        return f"https://vidsrc.to/embed/movie/{imdb_id}"
    if media_type == "tv":
        if not season or not episode:
            raise InvalidInputError("season and episode are required for TV shows")
        return f"https://vidsrc.to/embed/tv/{imdb_id}/{season}/{episode}"
    raise InvalidInputError("Invalid media_type. Use 'movie' or 'tv'")


def vidlink_movie_url(imdb_id: str) -> str:
    return f"https://vidlink.pro/movie/{imdb_id}"


def vidlink_tv_url(tmdb_id: str, season: str | None, episode: str | None) -> str:
    if not season or not episode:
        raise InvalidInputError("season and episode are required for TV shows")
    return f"https://vidlink.pro/tv/{tmdb_id}/{season}/{episode}"


class RgShowsClient(UpstreamClient):
    service_name = "RgShows"

    def __init__(self, base_url: str = "https://rgshows.com", timeout: float = 40):
        super().__init__(base_url, timeout)

    def default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "User-Agent": BROWSER_USER_AGENT}

    async def movie_stream(self, tmdb_id: str) -> StreamResult:
        return await self._stream(f"main/movie/{tmdb_id}")

    async def tv_stream(self, tmdb_id: str, season: int, episode: int) -> StreamResult:
        return await self._stream(f"main/tv/{tmdb_id}/{season}/{episode}")

    async def _stream(self, path: str) -> StreamResult:
        data = await self._get(path)
        stream = (data or {}).get("stream") if isinstance(data, dict) else None
        if not isinstance(stream, dict) or not stream.get("url"):
            raise NotFoundError("Stream not found")
        return StreamResult(success=True, stream_url=stream["url"], provider="RgShows", type="direct")


class IframeVideoClient(UpstreamClient):
    """Three-step flow: search by ids, scrape a token from the iframe page,
    then trade the token for the video source."""

    service_name = "IframeVideo"

    def __init__(self, api_host: str = "https://iframe.video", cdn_host: str = "https://videoframe.space", timeout: float = 8):
        super().__init__(api_host, timeout)
        self.cdn_host = cdn_host.rstrip("/")

    def default_headers(self) -> dict[str, str]:
        return {"User-Agent": BROWSER_USER_AGENT}

    async def search(self, kp_id: str, imdb_id: str) -> dict:
        data = await self._get("api/v2/search", {"imdb": imdb_id or "", "kp": kp_id or ""}, headers={"Accept": "application/json"})
        results = (data or {}).get("results") if isinstance(data, dict) else None
        if not results:
            raise NotFoundError("Stream not found")
        return results[0]

    async def fetch_token(self, path: str) -> str:
        headers = {
            "DNT": "1",
            "Referer": f"{self.cdn_host}/",
            "Sec-Fetch-Dest": "iframe",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "cross-site",
            "Upgrade-Insecure-Requests": "1",
            "sec-ch-ua": '"Google Chrome";v="113", "Chromium";v="113", "Not-A.Brand";v="24"',
            "sec-ch-ua-mobile": "?0",
            "sec-ch-ua-platform": '"Windows"',
        }
        page = await self._get_text(path, headers=headers)
        token = extract_iframe_token(page)
        if not token:
            raise UpstreamError(self.service_name, message="IframeVideo token not found")
        return token

    async def load_video(self, cid: int | str, token: str, media_type: str) -> str:
        form = aiohttp.FormData()
        for name, value in (
            ("token", token),
            ("type", media_type),
            ("season", ""),
            ("episode", ""),
            ("mobile", "false"),
            ("id", str(cid)),
            ("qt", "480"),
        ):
            # forces multipart/form-data
            form.add_field(name, value, content_type="text/plain")
        headers = {"Origin": self.cdn_host, "Referer": f"{self.cdn_host}/"}
        data = await self._post(f"{self.cdn_host}/loadvideo", data=form, headers=headers)
        src = (data or {}).get("src") if isinstance(data, dict) else None
        if not src:
            raise NotFoundError("Stream not found")
        return src

    async def stream(self, kp_id: str, imdb_id: str) -> StreamResult:
        if not kp_id and not imdb_id:
            raise InvalidInputError("Either kinopoisk_id or imdb_id path param is required")
        found = await self.search(kp_id, imdb_id)
        token = await self.fetch_token(str(found.get("path") or ""))
        src = await self.load_video(found.get("cid") or 0, token, str(found.get("type") or ""))
        return StreamResult(success=True, stream_url=src, provider="IframeVideo", type="direct")
