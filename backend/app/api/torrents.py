from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.api import envelope
from app.exceptions import InvalidInputError
from app.services import torrent_pipeline as pipeline
from app.services.registry import Providers, get_providers

router = APIRouter(prefix="/api/v1/torrents", tags=["torrents"])

FALSE_VALUES = ("0", "false", "no", "off")
TRUE_VALUES = ("1", "true", "yes", "on")


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return None


def _flag(value: str | None) -> bool:
    """Query flag that counts when present, e.g. ``?season_fallback``."""
    return value is not None and value.strip().lower() not in FALSE_VALUES


def _csv(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def _require_title(title: str, original_title: str):
    if not title and not original_title:
        raise InvalidInputError("Title or original title is required")


def _dump(results) -> list[dict]:
    return [r.model_dump() for r in results]


def _dump_groups(groups: dict) -> dict:
    out = {}
    for key, value in groups.items():
        out[key] = _dump_groups(value) if isinstance(value, dict) else _dump(value)
    return out


@router.get("/search")
async def search_by_query(
    query: str = Query(""),
    type: str = Query("movie"),
    year: str = Query(""),
    providers: Providers = Depends(get_providers),
):
    if not query:
        raise InvalidInputError("Query is required")
    results = await providers.torrents.search_query(query, type, year)
    return envelope.ok({
        "query": query,
        "type": type,
        "year": year,
        "total": len(results),
        "results": _dump(results),
    })


@router.get("/search/{imdb_id}")
async def search_by_imdb(
    imdb_id: str,
    type: str = Query("movie"),
    quality: str | None = Query(None, description="Comma separated, e.g. 1080p,4K"),
    min_quality: str = Query("", alias="minQuality"),
    max_quality: str = Query("", alias="maxQuality"),
    exclude_qualities: str | None = Query(None, alias="excludeQualities"),
    hdr: str | None = Query(None),
    hevc: str | None = Query(None),
    sort_by: str = Query("seeders", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    group_by_quality: str | None = Query(None, alias="groupByQuality"),
    group_by_season: str | None = Query(None, alias="groupBySeason"),
    season: int | None = Query(None, ge=1),
    season_fallback: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    media_type = type or "movie"
    options = pipeline.TorrentSearchOptions(
        season=season,
        quality=_csv(quality),
        min_quality=min_quality,
        max_quality=max_quality,
        exclude_qualities=_csv(exclude_qualities),
        hdr=_parse_bool(hdr),
        hevc=_parse_bool(hevc),
        sort_by=sort_by or "seeders",
        sort_order=sort_order or "desc",
        group_by_quality=_parse_bool(group_by_quality) is True,
        group_by_season=_parse_bool(group_by_season) is True,
        content_type=media_type,
    )
    results = await providers.torrents.search_by_imdb(imdb_id, media_type, options, _flag(season_fallback))

    data: dict = {"imdbId": imdb_id, "type": media_type, "total": len(results)}
    if season:
        data["season"] = season
    groups = pipeline.group_results(results, options)
    if groups is not None:
        data["grouped"] = True
        data["groups"] = _dump_groups(groups)
    else:
        data["grouped"] = False
        data["results"] = _dump(results)

    if not results:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "No torrents found for this IMDB ID", "data": data},
        )
    return envelope.ok(data)


@router.get("/movies")
async def search_movies(
    title: str = Query(""),
    original_title: str = Query("", alias="originalTitle"),
    year: str = Query(""),
    providers: Providers = Depends(get_providers),
):
    _require_title(title, original_title)
    results = await providers.torrents.search_movies(title, original_title, year)
    return envelope.ok({
        "title": title,
        "originalTitle": original_title,
        "year": year,
        "type": "movie",
        "total": len(results),
        "results": _dump(results),
    })


@router.get("/series")
async def search_series(
    title: str = Query(""),
    original_title: str = Query("", alias="originalTitle"),
    year: str = Query(""),
    season: int | None = Query(None, ge=1),
    providers: Providers = Depends(get_providers),
):
    _require_title(title, original_title)
    results = await providers.torrents.search_series(title, original_title, year, season)
    data = {
        "title": title,
        "originalTitle": original_title,
        "year": year,
        "type": "series",
        "total": len(results),
        "results": _dump(results),
    }
    if season:
        data["season"] = season
    return envelope.ok(data)


@router.get("/anime")
async def search_anime(
    title: str = Query(""),
    original_title: str = Query("", alias="originalTitle"),
    year: str = Query(""),
    providers: Providers = Depends(get_providers),
):
    _require_title(title, original_title)
    results = await providers.torrents.search_anime(title, original_title, year)
    return envelope.ok({
        "title": title,
        "originalTitle": original_title,
        "year": year,
        "type": "anime",
        "total": len(results),
        "results": _dump(results),
    })


@router.get("/seasons")
async def available_seasons(
    title: str = Query(""),
    original_title: str = Query("", alias="originalTitle"),
    year: str = Query(""),
    providers: Providers = Depends(get_providers),
):
    _require_title(title, original_title)
    seasons = await providers.torrents.available_seasons(title, original_title, year)
    return envelope.ok({
        "title": title,
        "originalTitle": original_title,
        "year": year,
        "seasons": seasons,
        "total": len(seasons),
    })
