"""RedAPI torrent indexer client and the search flows built on it."""
from __future__ import annotations
import dataclasses
import logging

from app.exceptions import NotFoundError, ServiceError
from app.schemas.torrent import RedAPIResponse, TitleInfo, TorrentResult
from app.services import torrent_pipeline as pipeline
from app.services.tmdb import TMDBClient
from app.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

# (is_serial, category) per content type
SEARCH_KINDS = {
    "movie": ("1", "2000"),
    "serial": ("2", "5000"),
    "anime": ("5", "5070"),
}

FALLBACK_THRESHOLD = 5


def search_kind(media_type: str | None) -> str:
    return pipeline.normalize_content_type(media_type) or "movie"


class AllohaLookup(UpstreamClient):
    """Title/year lookup by IMDb id through the Alloha catalog."""

    service_name = "Alloha"

    def __init__(self, token: str, base_url: str = "https://api.alloha.tv", timeout: float = 8):
        super().__init__(base_url, timeout)
        self.token = token

    async def title_by_imdb(self, imdb_id: str) -> TitleInfo | None:
        data = await self._get("/", {"token": self.token, "imdb": imdb_id})
        if not isinstance(data, dict) or data.get("status") != "success":
            return None
        info = data.get("data") or {}
        year = info.get("year") or 0
        return TitleInfo(
            title=str(info.get("name") or ""),
            original_title=str(info.get("original_name") or ""),
            year=str(year) if year else "",
        )


class RedAPIClient(UpstreamClient):
    service_name = "RedAPI"

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 8):
        super().__init__(base_url, timeout)
        self.api_key = api_key

    async def search(self, params: dict[str, str]) -> list[TorrentResult]:
        query: list[tuple[str, str]] = []
        for key, value in params.items():
            if not value:
                continue
            query.append(("category[]" if key == "category" else key, str(value)))
        if self.api_key:
            query.append(("apikey", self.api_key))
        data = await self._get("api/v2.0/indexers/all/results", query)
        return pipeline.parse_results(RedAPIResponse.model_validate(data or {}).results)


class TorrentService:
    def __init__(self, redapi: RedAPIClient, tmdb: TMDBClient | None = None, alloha: AllohaLookup | None = None):
        self.redapi = redapi
        self.tmdb = tmdb
        self.alloha = alloha

    @staticmethod
    def build_params(
        kind: str,
        title: str = "",
        original_title: str = "",
        year: str = "",
        imdb_id: str = "",
        season: int | None = None,
        query: str = "",
    ) -> dict[str, str]:
        is_serial, category = SEARCH_KINDS[kind]
        params = {
            "query": query,
            "title": title,
            "title_original": original_title,
            "year": year,
            "imdb": imdb_id,
            "is_serial": is_serial,
            "category": category,
        }
        if season:
            params["season"] = str(season)
        return params

    async def resolve_title(self, imdb_id: str, media_type: str) -> TitleInfo:
        """Alloha first, then TMDB find-by-IMDb."""
        if self.alloha is not None:
            try:
                info = await self.alloha.title_by_imdb(imdb_id)
                if info and (info.title or info.original_title):
                    return info
            except ServiceError as e:
                logger.info(f"Alloha lookup for {imdb_id} failed: {e}")

        if self.tmdb is None:
            raise NotFoundError(f"no results found for IMDB ID: {imdb_id}")
        found = await self.tmdb.find(imdb_id, "ru-RU")
        if search_kind(media_type) == "serial" and found.tv_results:
            show = found.tv_results[0]
            return TitleInfo(title=show.name, original_title=show.original_name, year=show.first_air_date[:4])
        if search_kind(media_type) != "serial" and found.movie_results:
            movie = found.movie_results[0]
            return TitleInfo(title=movie.title, original_title=movie.original_title, year=movie.release_date[:4])
        raise NotFoundError(f"no results found for IMDB ID: {imdb_id}")

    async def search_with_fallback(self, params: dict[str, str], season: int | None) -> list[TorrentResult]:
        """Indexer query; for a small seasonal result set, re-query without the
        season and merge rows whose title or season list matches."""
        results = await self.redapi.search(params)
        if not season or len(results) >= FALLBACK_THRESHOLD:
            return results
        unseasoned = {k: v for k, v in params.items() if k != "season"}
        try:
            extra = await self.redapi.search(unseasoned)
        except ServiceError as e:
            logger.info(f"Season fallback query failed: {e}")
            return results
        return pipeline.merge_unique(results, pipeline.filter_by_season(extra, season))

    async def search_by_imdb(
        self,
        imdb_id: str,
        media_type: str,
        options: pipeline.TorrentSearchOptions,
        season_fallback: bool = False,
    ) -> list[TorrentResult]:
        info = await self.resolve_title(imdb_id, media_type)
        kind = search_kind(media_type)
        params = self.build_params(
            kind,
            title=info.title,
            original_title=info.original_title,
            year=info.year,
            imdb_id=imdb_id,
            season=options.season,
        )
        if season_fallback and kind != "movie":
            results = await self.search_with_fallback(params, options.season)
        else:
            results = await self.redapi.search(params)
        if not options.content_type:
            options = dataclasses.replace(options, content_type=kind)
        return pipeline.apply_options(results, options)

    async def search_movies(self, title: str, original_title: str, year: str) -> list[TorrentResult]:
        results = await self.redapi.search(self.build_params("movie", title, original_title, year))
        return pipeline.filter_by_content_type(results, "movie")

    async def search_series(self, title: str, original_title: str, year: str, season: int | None = None) -> list[TorrentResult]:
        params = self.build_params("serial", title, original_title, year, season=season)
        results = await self.search_with_fallback(params, season)
        return pipeline.filter_by_content_type(results, "serial")

    async def search_anime(self, title: str, original_title: str, year: str) -> list[TorrentResult]:
        results = await self.redapi.search(self.build_params("anime", title, original_title, year))
        return pipeline.filter_by_content_type(results, "anime")

    async def available_seasons(self, title: str, original_title: str, year: str) -> list[int]:
        return pipeline.available_seasons(await self.search_series(title, original_title, year))

    async def search_query(self, query: str, media_type: str = "", year: str = "") -> list[TorrentResult]:
        kind = search_kind(media_type)
        results = await self.redapi.search(self.build_params(kind, year=year, query=query))
        if media_type:
            results = pipeline.filter_by_content_type(results, kind)
        return pipeline.sort_torrents(results)
