"""Process-wide provider wiring, built once on first use."""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, fields

from app.config import Settings, get_settings
from app.exceptions import MisconfigurationError, ServiceError
from app.services.auth import AuthService, GoogleOAuthClient, JWTService
from app.services.catalog import CatalogService
from app.services.favorites import FavoritesService
from app.services.images import ImageProxy
from app.services.kinopoisk import KinopoiskClient
from app.services.mailer import Mailer
from app.services.players import AllohaPlayer, IframeVideoClient, LumexPlayer, RgShowsClient, VibixPlayer
from app.services.reactions import CubClient, ReactionService
from app.services.tmdb import TMDBClient
from app.services.torrents import AllohaLookup, RedAPIClient, TorrentService
from app.services.upstream import UpstreamClient
from app.services.webtorrent import WebTorrentService

logger = logging.getLogger(__name__)


@dataclass
class Providers:
    settings: Settings
    tmdb: TMDBClient | None
    kinopoisk: KinopoiskClient | None
    catalog: CatalogService
    torrents: TorrentService
    images: ImageProxy
    alloha: AllohaPlayer
    lumex: LumexPlayer
    vibix: VibixPlayer
    rgshows: RgShowsClient
    iframevideo: IframeVideoClient
    auth: AuthService
    favorites: FavoritesService
    reactions: ReactionService
    webtorrent: WebTorrentService

    def clients(self) -> list[UpstreamClient]:
        found: list[UpstreamClient] = []
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, UpstreamClient):
                found.append(value)
        found.extend(c for c in (self.torrents.redapi, self.torrents.alloha, self.auth.google, self.reactions.cub) if c)
        return found

    async def close(self):
        for client in self.clients():
            await client.close()


def build_providers(settings: Settings) -> Providers:
    if not settings.jwt_secret:
        raise MisconfigurationError("JWT_SECRET")

    tmdb = None
    if settings.tmdb_access_token:
        tmdb = TMDBClient(settings.tmdb_access_token, settings.tmdb_base_url, settings.tmdb_timeout)
    else:
        logger.warning("TMDB_ACCESS_TOKEN is not set; TMDB-backed routes will fail")

    kinopoisk = None
    if settings.kpapi_key:
        kinopoisk = KinopoiskClient(settings.kpapi_key, settings.kpapi_base_url, settings.kinopoisk_timeout)

    alloha_lookup = AllohaLookup(settings.alloha_token, timeout=settings.player_timeout) if settings.alloha_token else None
    torrents = TorrentService(
        RedAPIClient(settings.redapi_base_url, settings.redapi_key, settings.torrent_timeout),
        tmdb=tmdb,
        alloha=alloha_lookup,
    )

    redirect_url = settings.google_redirect_url or f"{settings.base_url}/api/v1/auth/google/callback"
    google = GoogleOAuthClient(settings.google_client_id, settings.google_client_secret, redirect_url)
    mailer = Mailer(
        settings.gmail_user,
        settings.gmail_app_password,
        settings.smtp_host,
        settings.smtp_port,
        settings.smtp_timeout,
        settings.verification_code_minutes,
    )
    auth = AuthService(
        JWTService(settings.jwt_secret, settings.access_token_days),
        mailer=mailer,
        google=google,
        refresh_token_days=settings.refresh_token_days,
        verification_code_minutes=settings.verification_code_minutes,
        frontend_url=settings.frontend_url,
    )

    return Providers(
        settings=settings,
        tmdb=tmdb,
        kinopoisk=kinopoisk,
        catalog=CatalogService(tmdb, kinopoisk, settings.search_enrich_concurrency),
        torrents=torrents,
        images=ImageProxy(settings.tmdb_image_base_url, settings.image_timeout, max_bytes=settings.image_max_bytes),
        alloha=AllohaPlayer(settings.alloha_token, timeout=settings.player_timeout),
        lumex=LumexPlayer(settings.lumex_url),
        vibix=VibixPlayer(settings.vibix_host, settings.vibix_token, settings.player_timeout),
        rgshows=RgShowsClient(),
        iframevideo=IframeVideoClient(timeout=settings.player_timeout),
        auth=auth,
        favorites=FavoritesService(tmdb, kinopoisk),
        reactions=ReactionService(CubClient(settings.cub_api_url)),
        webtorrent=WebTorrentService(tmdb),
    )


_providers: Providers | None = None
_init_error: str | None = None
_lock = asyncio.Lock()


async def get_providers() -> Providers:
    """First caller builds the providers; a failed build is remembered and re-raised."""
    global _providers, _init_error
    if _providers is not None:
        return _providers
    if _init_error is not None:
        raise ServiceError(_init_error)
    async with _lock:
        if _providers is None and _init_error is None:
            try:
                _providers = build_providers(get_settings())
                logger.info("Providers initialized")
            except Exception as e:
                _init_error = str(e)
                logger.error(f"Provider initialization failed: {_init_error}")
        if _init_error is not None:
            raise ServiceError(_init_error)
    return _providers


async def close_providers():
    global _providers
    if _providers is not None:
        await _providers.close()
        _providers = None
