"""Async TMDB v3 client (bearer-token auth)."""
from __future__ import annotations
import logging
from typing import Any

from app.schemas import tmdb
from app.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "ru-RU"


class TMDBClient(UpstreamClient):
    service_name = "TMDB"

    def __init__(self, access_token: str, base_url: str = "https://api.themoviedb.org/3", timeout: float = 10):
        super().__init__(base_url, timeout)
        self.access_token = access_token

    def default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.access_token}",
        }

    @staticmethod
    def _params(language: str | None = None, **extra: Any) -> dict[str, str]:
        params = {"language": language or DEFAULT_LANGUAGE}
        for key, value in extra.items():
            if isinstance(value, bool):
                params[key] = "true" if value else "false"
            elif value is not None and value != "" and value != 0:
                params[key] = str(value)
        return params

    # Search

    async def search_movies(
        self,
        query: str,
        page: int = 1,
        language: str | None = None,
        region: str | None = None,
        year: int = 0,
    ) -> tmdb.MoviePage:
        params = self._params(language, query=query, page=page, include_adult=False, region=region, year=year)
        return tmdb.MoviePage.model_validate(await self._get("search/movie", params))

    async def search_tv(self, query: str, page: int = 1, language: str | None = None, year: int = 0) -> tmdb.TVPage:
        params = self._params(language, query=query, page=page, include_adult=False, first_air_date_year=year)
        return tmdb.TVPage.model_validate(await self._get("search/tv", params))

    async def search_multi(self, query: str, page: int = 1, language: str | None = None) -> tmdb.MultiPage:
        """Multi search without people and untitled rows; totals reflect the filter."""
        params = self._params(language, query=query, page=page, include_adult=False)
        result = tmdb.MultiPage.model_validate(await self._get("search/multi", params))
        kept = []
        for row in result.results:
            if row.media_type == "movie" and row.title:
                kept.append(row)
            elif row.media_type == "tv" and row.name:
                kept.append(row)
        result.results = kept
        result.total_results = len(kept)
        return result

    # Details

    async def get_movie(self, movie_id: int, language: str | None = None) -> tmdb.Movie:
        params = self._params(language, append_to_response="external_ids")
        return tmdb.Movie.model_validate(await self._get(f"movie/{movie_id}", params))

    async def get_tv(self, tv_id: int, language: str | None = None) -> tmdb.TVShow:
        params = self._params(language, append_to_response="external_ids")
        return tmdb.TVShow.model_validate(await self._get(f"tv/{tv_id}", params))

    async def get_season(self, tv_id: int, season_number: int, language: str | None = None) -> tmdb.SeasonDetails:
        data = await self._get(f"tv/{tv_id}/season/{season_number}", self._params(language))
        return tmdb.SeasonDetails.model_validate(data)

    async def get_genres(self, media_type: str, language: str | None = None) -> tmdb.GenreList:
        return tmdb.GenreList.model_validate(await self._get(f"genre/{media_type}/list", self._params(language)))

    async def movie_external_ids(self, movie_id: int) -> tmdb.ExternalIds:
        return tmdb.ExternalIds.model_validate(await self._get(f"movie/{movie_id}/external_ids"))

    async def tv_external_ids(self, tv_id: int) -> tmdb.ExternalIds:
        return tmdb.ExternalIds.model_validate(await self._get(f"tv/{tv_id}/external_ids"))

    async def external_ids(self, media_type: str, tmdb_id: int) -> tmdb.ExternalIds:
        if media_type == "tv":
            return await self.tv_external_ids(tmdb_id)
        return await self.movie_external_ids(tmdb_id)

    async def find(self, external_id: str, language: str | None = None) -> tmdb.FindResult:
        params = self._params(language, external_source="imdb_id")
        return tmdb.FindResult.model_validate(await self._get(f"find/{external_id}", params))

    async def find_by_external_id(self, imdb_id: str, media_type: str, language: str | None = None) -> int | None:
        """Resolve an IMDb id to a TMDB id of the given media type."""
        result = await self.find(imdb_id, language)
        rows = result.tv_results if media_type == "tv" else result.movie_results
        if rows and rows[0].id:
            return rows[0].id
        return None

    # Lists

    async def movie_list(self, kind: str, page: int = 1, language: str | None = None, region: str | None = None) -> tmdb.MoviePage:
        """kind: popular | top_rated | upcoming | now_playing"""
        params = self._params(language, page=page, region=region)
        return tmdb.MoviePage.model_validate(await self._get(f"movie/{kind}", params))

    async def tv_list(self, kind: str, page: int = 1, language: str | None = None) -> tmdb.TVPage:
        """kind: popular | top_rated | on_the_air | airing_today"""
        params = self._params(language, page=page)
        return tmdb.TVPage.model_validate(await self._get(f"tv/{kind}", params))

    async def movie_related(self, movie_id: int, relation: str, page: int = 1, language: str | None = None) -> tmdb.MoviePage:
        """relation: recommendations | similar"""
        params = self._params(language, page=page)
        return tmdb.MoviePage.model_validate(await self._get(f"movie/{movie_id}/{relation}", params))

    async def tv_related(self, tv_id: int, relation: str, page: int = 1, language: str | None = None) -> tmdb.TVPage:
        params = self._params(language, page=page)
        return tmdb.TVPage.model_validate(await self._get(f"tv/{tv_id}/{relation}", params))

    async def discover_movies(self, genre_id: int, page: int = 1, language: str | None = None) -> tmdb.MoviePage:
        params = self._params(language, page=page, with_genres=genre_id, sort_by="popularity.desc")
        return tmdb.MoviePage.model_validate(await self._get("discover/movie", params))

    async def discover_tv(self, genre_id: int, page: int = 1, language: str | None = None) -> tmdb.TVPage:
        params = self._params(language, page=page, with_genres=genre_id, sort_by="popularity.desc")
        return tmdb.TVPage.model_validate(await self._get("discover/tv", params))
