"""Source selection, cross-source enrichment and the IMDb-bridged id cross-walk.

Requests address content either by a prefixed id (``kp_326``, ``tmdb_278``)
or by a bare legacy number. Bare numbers carry no source, so the source is
picked from the request language: Russian goes to Kinopoisk when it is
configured, everything else to TMDB.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass

from app.exceptions import InvalidInputError, NotFoundError, ProviderNotConfigured, ServiceError
from app.schemas.unified import ExternalIds, SearchPage, UnifiedContent, UnifiedSearchItem
from app.services import mappers
from app.services.kinopoisk import KinopoiskClient
from app.services.tmdb import TMDBClient

logger = logging.getLogger(__name__)

SOURCES = ("kp", "tmdb")

MOVIE_LISTS = {
    "popular": "popular",
    "top-rated": "top_rated",
    "upcoming": "upcoming",
    "now-playing": "now_playing",
}
TV_LISTS = {
    "popular": "popular",
    "top-rated": "top_rated",
    "on-the-air": "on_the_air",
    "airing-today": "airing_today",
}
KP_COLLECTIONS = {
    ("movie", "popular"): "TOP_POPULAR_MOVIES",
    ("movie", "top-rated"): "TOP_250_MOVIES",
    ("tv", "popular"): "POPULAR_SERIES",
    ("tv", "top-rated"): "TOP_250_TV_SHOWS",
}


@dataclass(frozen=True)
class ContentId:
    value: int
    source: str | None = None

    @property
    def prefixed(self) -> bool:
        return self.source is not None


def parse_content_id(raw: str) -> ContentId:
    """Parse ``NNN``, ``kp_NNN`` or ``tmdb_NNN``."""
    text = (raw or "").strip()
    source = None
    if "_" in text:
        source, _, text = text.partition("_")
        source = source.lower()
        if source not in SOURCES:
            raise InvalidInputError("invalid SOURCE_ID format")
    try:
        value = int(text)
    except ValueError:
        raise InvalidInputError("invalid SOURCE_ID format") from None
    if value <= 0:
        raise InvalidInputError("invalid SOURCE_ID format")
    return ContentId(value=value, source=source)


def normalize_language(lang: str | None) -> str:
    cleaned = (lang or "").strip().strip("'\"").strip().lower()
    if not cleaned or cleaned.startswith("ru"):
        return "ru-RU"
    return "en-US"


def is_russian(language: str) -> bool:
    return language.lower().startswith("ru")


def validate_source(source: str | None) -> str | None:
    if source is None:
        return None
    cleaned = source.strip().lower()
    if not cleaned:
        return None
    if cleaned not in SOURCES:
        raise InvalidInputError("source must be 'kp' or 'tmdb'")
    return cleaned


def select_source(
    content_id: ContentId | None,
    explicit: str | None,
    language: str,
    kp_configured: bool,
) -> str:
    """Prefix beats explicit source, explicit beats language, TMDB is the default."""
    if content_id is not None and content_id.source:
        return content_id.source
    chosen = validate_source(explicit)
    if chosen:
        return chosen
    if is_russian(language) and kp_configured:
        return "kp"
    return "tmdb"


class CatalogService:
    def __init__(
        self,
        tmdb: TMDBClient | None,
        kinopoisk: KinopoiskClient | None,
        enrich_concurrency: int = 5,
    ):
        self.tmdb = tmdb
        self.kinopoisk = kinopoisk
        self.enrich_concurrency = enrich_concurrency

    @property
    def kp_configured(self) -> bool:
        return self.kinopoisk is not None

    def require_tmdb(self) -> TMDBClient:
        if self.tmdb is None:
            raise ProviderNotConfigured("TMDB")
        return self.tmdb

    def require_kp(self) -> KinopoiskClient:
        if self.kinopoisk is None:
            raise ProviderNotConfigured("Kinopoisk")
        return self.kinopoisk

    def select(self, content_id: ContentId | None, explicit: str | None, language: str) -> str:
        return select_source(content_id, explicit, language, self.kp_configured)

    # Single items

    async def get_movie(self, source: str, movie_id: int, language: str) -> UnifiedContent:
        if source == "kp":
            film = await self.require_kp().get_film(movie_id)
            content = mappers.map_kp_film(film)
            if content.type != "movie":
                raise NotFoundError("movie not found")
            await self.enrich(content, language)
            return content
        movie = await self.require_tmdb().get_movie(movie_id, language)
        return mappers.map_tmdb_movie(movie)

    async def get_tv(
        self,
        source: str,
        tv_id: int,
        language: str,
        upgrade: bool = False,
    ) -> tuple[UnifiedContent, str]:
        """Return the show and the source tag that actually produced it.

        With ``upgrade`` a Kinopoisk show whose TMDB id resolves is replaced
        by the richer TMDB record.
        """
        if source == "tmdb":
            show = await self.require_tmdb().get_tv(tv_id, language)
            return mappers.map_tmdb_tv(show), "tmdb"

        film = await self.require_kp().get_film(tv_id)
        content = mappers.map_kp_film(film)
        await self.enrich(content, language)
        if upgrade and content.external_ids.tmdb and self.tmdb is not None:
            try:
                show = await self.tmdb.get_tv(content.external_ids.tmdb, language)
            except ServiceError as e:
                logger.info(f"TV upgrade for kp_{tv_id} skipped: {e}")
            else:
                upgraded = mappers.map_tmdb_tv(show)
                upgraded.external_ids.kp = content.external_ids.kp
                if not upgraded.imdb_id:
                    upgraded.imdb_id = content.imdb_id
                    upgraded.external_ids.imdb = content.imdb_id
                return upgraded, "tmdb"
        return content, "kp"

    async def enrich(self, content: UnifiedContent, language: str) -> None:
        """Fill externalIds.tmdb from the IMDb id. Failures leave content as-is."""
        if not content.imdb_id or content.external_ids.tmdb is not None or self.tmdb is None:
            return
        try:
            tmdb_id = await self.tmdb.find_by_external_id(content.imdb_id, content.type, language)
        except ServiceError as e:
            logger.info(f"Enrichment for {content.source_id} failed: {e}")
            return
        if tmdb_id:
            content.external_ids.tmdb = tmdb_id

    # Search

    async def search(self, source: str, query: str, page: int, language: str) -> SearchPage:
        if source == "kp":
            result = await self.require_kp().search_films(query, page)
            items = mappers.map_kp_search(result.films)
            await self._enrich_items(items, language)
            return SearchPage(
                items=items,
                page=page,
                total_pages=result.total_pages,
                total_results=result.total_results,
            )
        result = await self.require_tmdb().search_multi(query, page, language)
        return SearchPage(
            items=mappers.map_tmdb_multi(result),
            page=result.page or page,
            total_pages=result.total_pages,
            total_results=result.total_results,
        )

    async def _enrich_items(self, items: list[UnifiedSearchItem], language: str) -> None:
        if not items or self.kinopoisk is None:
            return
        semaphore = asyncio.Semaphore(self.enrich_concurrency)

        async def enrich_one(item: UnifiedSearchItem):
            async with semaphore:
                try:
                    if not item.external_ids.imdb:
                        film = await self.kinopoisk.get_film(int(item.id))
                        item.external_ids.imdb = film.imdb_id
                    if item.external_ids.imdb and self.tmdb is not None:
                        item.external_ids.tmdb = await self.tmdb.find_by_external_id(
                            item.external_ids.imdb, item.type, language
                        )
                except ServiceError as e:
                    logger.debug(f"Search enrichment for {item.source_id} failed: {e}")

        await asyncio.gather(*(enrich_one(item) for item in items))

    async def search_movies(self, query: str, page: int, language: str, year: int = 0) -> SearchPage:
        result = await self.require_tmdb().search_movies(query, page, language, year=year)
        return _movie_page(result)

    async def search_tv(self, query: str, page: int, language: str, year: int = 0) -> SearchPage:
        result = await self.require_tmdb().search_tv(query, page, language, year=year)
        return _tv_page(result)

    # Lists

    async def movie_list(self, kind: str, page: int, language: str, source: str = "tmdb", region: str | None = None) -> SearchPage:
        if source == "kp" and ("movie", kind) in KP_COLLECTIONS:
            return await self._kp_collection(KP_COLLECTIONS[("movie", kind)], page, language)
        result = await self.require_tmdb().movie_list(MOVIE_LISTS[kind], page, language, region)
        return _movie_page(result)

    async def tv_list(self, kind: str, page: int, language: str, source: str = "tmdb") -> SearchPage:
        if source == "kp" and ("tv", kind) in KP_COLLECTIONS:
            return await self._kp_collection(KP_COLLECTIONS[("tv", kind)], page, language)
        result = await self.require_tmdb().tv_list(TV_LISTS[kind], page, language)
        return _tv_page(result)

    async def _kp_collection(self, collection: str, page: int, language: str) -> SearchPage:
        result = await self.require_kp().get_collection(collection, page)
        items = mappers.map_kp_search(result.films)
        return SearchPage(items=items, page=page, total_pages=result.total_pages, total_results=result.total_results)

    async def related(self, media_type: str, content_id: ContentId, relation: str, page: int, language: str) -> SearchPage:
        """Recommendations or similar titles; always answered by TMDB."""
        tmdb_id = await self.resolve_tmdb_id(content_id, media_type, language)
        client = self.require_tmdb()
        if media_type == "tv":
            return _tv_page(await client.tv_related(tmdb_id, relation, page, language))
        return _movie_page(await client.movie_related(tmdb_id, relation, page, language))

    # Cross-walk

    async def resolve_tmdb_id(self, content_id: ContentId, media_type: str, language: str = "ru-RU") -> int:
        if content_id.source != "kp":
            return content_id.value
        film = await self.require_kp().get_film(content_id.value)
        if film.imdb_id:
            tmdb_id = await self.require_tmdb().find_by_external_id(film.imdb_id, media_type, language)
            if tmdb_id:
                return tmdb_id
        raise NotFoundError(f"TMDB id not found for kp_{content_id.value}")

    async def kp_to_tmdb(self, kp_id: int, media_type: str, language: str = "ru-RU") -> int | None:
        film = await self.require_kp().get_film(kp_id)
        if not film.imdb_id:
            return None
        return await self.require_tmdb().find_by_external_id(film.imdb_id, media_type, language)

    async def tmdb_to_kp(self, tmdb_id: int, media_type: str) -> int | None:
        external = await self.require_tmdb().external_ids(media_type, tmdb_id)
        if not external.imdb_id:
            return None
        film = await self.require_kp().get_film_by_imdb(external.imdb_id)
        return film.kinopoisk_id or None

    async def external_ids(self, content_id: ContentId, media_type: str, language: str) -> ExternalIds:
        """All known ids for a title. The opposing catalog is looked up best-effort."""
        if content_id.source == "kp":
            film = await self.require_kp().get_film(content_id.value)
            ids = ExternalIds(kp=content_id.value, imdb=film.imdb_id)
            if film.imdb_id and self.tmdb is not None:
                try:
                    ids.tmdb = await self.tmdb.find_by_external_id(film.imdb_id, media_type, language)
                except ServiceError as e:
                    logger.info(f"TMDB lookup for kp_{content_id.value} failed: {e}")
            return ids

        external = await self.require_tmdb().external_ids(media_type, content_id.value)
        ids = ExternalIds(tmdb=content_id.value, imdb=external.imdb_id)
        if external.imdb_id and self.kinopoisk is not None:
            try:
                film = await self.kinopoisk.get_film_by_imdb(external.imdb_id)
                ids.kp = film.kinopoisk_id or None
            except ServiceError as e:
                logger.info(f"Kinopoisk lookup for tmdb_{content_id.value} failed: {e}")
        return ids

    # Categories

    async def categories(self, language: str) -> list[dict]:
        client = self.require_tmdb()
        movie_genres, tv_genres = await asyncio.gather(
            client.get_genres("movie", language),
            client.get_genres("tv", language),
        )
        merged: dict[int, str] = {}
        for genre in movie_genres.genres + tv_genres.genres:
            merged.setdefault(genre.id, genre.name)
        return [
            {"id": genre_id, "name": name, "slug": category_slug(name)}
            for genre_id, name in merged.items()
        ]

    async def category_media(self, genre_id: int, media_type: str, page: int, language: str) -> SearchPage:
        client = self.require_tmdb()
        if media_type == "tv":
            return _tv_page(await client.discover_tv(genre_id, page, language))
        return _movie_page(await client.discover_movies(genre_id, page, language))


def category_slug(name: str) -> str:
    kept = "".join(ch for ch in name.lower() if (ch.isascii() and ch.isalnum()) or ch == " ")
    return kept.strip().replace(" ", "-")


def _movie_page(result) -> SearchPage:
    return SearchPage(
        items=mappers.map_tmdb_movie_items(result),
        page=result.page,
        total_pages=result.total_pages,
        total_results=result.total_results,
    )


def _tv_page(result) -> SearchPage:
    return SearchPage(
        items=mappers.map_tmdb_tv_items(result),
        page=result.page,
        total_pages=result.total_pages,
        total_results=result.total_results,
    )
