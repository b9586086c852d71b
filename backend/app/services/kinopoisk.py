"""Async client for the unofficial Kinopoisk API (X-API-KEY auth)."""
from __future__ import annotations
import logging
from typing import Any

from app.exceptions import NotFoundError
from app.schemas.kinopoisk import KPFilm, KPFilmList, KPFilmShort
from app.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)


def parse_film_list(data: Any) -> KPFilmList:
    """Accept both list shapes: {items, totalPages} (v2.2) and {films, pagesCount} (v2.1)."""
    data = data or {}
    if isinstance(data.get("items"), list):
        rows = data["items"]
        total_pages = data.get("totalPages") or 0
        total = data.get("total") or len(rows)
    else:
        rows = data.get("films") or []
        total_pages = data.get("pagesCount") or 0
        total = data.get("searchFilmsCountResult") or len(rows)
    films = [KPFilmShort.model_validate(row) for row in rows if isinstance(row, dict)]
    result = KPFilmList(films=films, total_pages=total_pages, total_results=total)
    if result.total_pages == 0 and films:
        result.total_pages = 1
    return result


class KinopoiskClient(UpstreamClient):
    service_name = "Kinopoisk"

    def __init__(self, api_key: str, base_url: str = "https://kinopoiskapiunofficial.tech/api", timeout: float = 10):
        super().__init__(base_url, timeout)
        self.api_key = api_key

    def default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "X-API-KEY": self.api_key}

    async def get_film(self, kp_id: int) -> KPFilm:
        return KPFilm.model_validate(await self._get(f"v2.2/films/{kp_id}"))

    async def get_film_by_imdb(self, imdb_id: str) -> KPFilm:
        data = await self._get("v2.2/films", {"imdbId": imdb_id})
        items = (data or {}).get("items") or []
        if not items:
            raise NotFoundError("film not found")
        return KPFilm.model_validate(items[0])

    async def search_films(self, keyword: str, page: int = 1) -> KPFilmList:
        data = await self._get("v2.1/films/search-by-keyword", {"keyword": keyword, "page": str(page)})
        return parse_film_list(data)

    async def get_collection(self, collection: str, page: int = 1) -> KPFilmList:
        """Collection listing, e.g. TOP_POPULAR_ALL or TOP_250_MOVIES."""
        data = await self._get("v2.2/films/collections", {"type": collection, "page": str(page)})
        return parse_film_list(data)
