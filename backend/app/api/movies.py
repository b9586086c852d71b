import time

from fastapi import APIRouter, Depends, Query

from app.api import envelope
from app.exceptions import EnvelopeError, ServiceError
from app.services.catalog import KP_COLLECTIONS, MOVIE_LISTS, normalize_language, parse_content_id, validate_source
from app.services.registry import Providers, get_providers

router = APIRouter(prefix="/api/v1/movies", tags=["movies"])


@router.get("/search")
async def search_movies(
    query: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    year: int = Query(0, ge=0),
    lang: str | None = Query(None),
    language: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    started = time.monotonic()
    language = normalize_language(lang or language)
    try:
        result = await providers.catalog.search_movies(query, page, language, year)
    except ServiceError as e:
        raise EnvelopeError.wrap(e, "tmdb", started, query) from e
    return envelope.unified_search(result, "tmdb", started, query)


async def _movie_list(kind: str, page: int, lang: str | None, source: str | None, region: str | None, providers: Providers):
    started = time.monotonic()
    tag = "tmdb"
    try:
        language = normalize_language(lang)
        chosen = validate_source(source) or "tmdb"
        if chosen == "kp" and ("movie", kind) in KP_COLLECTIONS:
            tag = "kp"
        result = await providers.catalog.movie_list(kind, page, language, tag, region)
    except ServiceError as e:
        raise EnvelopeError.wrap(e, tag, started) from e
    return envelope.unified_search(result, tag, started)


def _list_route(kind: str):
    async def handler(
        page: int = Query(1, ge=1),
        lang: str | None = Query(None),
        language: str | None = Query(None),
        source: str | None = Query(None, description="kp or tmdb; kp serves popular and top-rated from Kinopoisk collections"),
        region: str | None = Query(None),
        providers: Providers = Depends(get_providers),
    ):
        return await _movie_list(kind, page, lang or language, source, region, providers)

    handler.__name__ = f"movies_{kind.replace('-', '_')}"
    return handler


for _kind in MOVIE_LISTS:
    router.add_api_route(f"/{_kind}", _list_route(_kind), methods=["GET"])


@router.get("/{movie_id}", summary="Movie by id")
async def get_movie(
    movie_id: str,
    lang: str | None = Query(None),
    language: str | None = Query(None),
    source: str | None = Query(None),
    id_type: str | None = Query(None, description="Legacy spelling of source"),
    providers: Providers = Depends(get_providers),
):
    """Accepts ``kp_N``, ``tmdb_N`` or a bare number.

    A prefix decides the catalog. For a bare number ``source``/``id_type`` decide,
    and without them Russian requests go to Kinopoisk when it is configured.
    """
    started = time.monotonic()
    language = normalize_language(lang or language)
    chosen = ""
    try:
        content_id = parse_content_id(movie_id)
        chosen = providers.catalog.select(content_id, source or id_type, language)
        content = await providers.catalog.get_movie(chosen, content_id.value, language)
    except ServiceError as e:
        raise EnvelopeError.wrap(e, chosen, started) from e
    return envelope.unified(content, chosen, started)


async def _related(movie_id: str, relation: str, page: int, lang: str | None, providers: Providers):
    started = time.monotonic()
    try:
        content_id = parse_content_id(movie_id)
        result = await providers.catalog.related("movie", content_id, relation, page, normalize_language(lang))
    except ServiceError as e:
        raise EnvelopeError.wrap(e, "tmdb", started) from e
    return envelope.unified_search(result, "tmdb", started)


@router.get("/{movie_id}/recommendations")
async def movie_recommendations(
    movie_id: str,
    page: int = Query(1, ge=1),
    lang: str | None = Query(None),
    language: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    return await _related(movie_id, "recommendations", page, lang or language, providers)


@router.get("/{movie_id}/similar")
async def similar_movies(
    movie_id: str,
    page: int = Query(1, ge=1),
    lang: str | None = Query(None),
    language: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    return await _related(movie_id, "similar", page, lang or language, providers)


@router.get("/{movie_id}/external-ids")
async def movie_external_ids(
    movie_id: str,
    lang: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    content_id = parse_content_id(movie_id)
    ids = await providers.catalog.external_ids(content_id, "movie", normalize_language(lang))
    return envelope.ok(ids)
