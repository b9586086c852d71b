import time

from fastapi import APIRouter, Depends, Query

from app.api import envelope
from app.exceptions import EnvelopeError, ServiceError
from app.services.catalog import KP_COLLECTIONS, TV_LISTS, normalize_language, parse_content_id, validate_source
from app.services.registry import Providers, get_providers

router = APIRouter(prefix="/api/v1/tv", tags=["tv"])


@router.get("/search")
async def search_tv(
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
        result = await providers.catalog.search_tv(query, page, language, year)
    except ServiceError as e:
        raise EnvelopeError.wrap(e, "tmdb", started, query) from e
    return envelope.unified_search(result, "tmdb", started, query)


async def _tv_list(kind: str, page: int, lang: str | None, source: str | None, providers: Providers):
    started = time.monotonic()
    tag = "tmdb"
    try:
        language = normalize_language(lang)
        chosen = validate_source(source) or "tmdb"
        if chosen == "kp" and ("tv", kind) in KP_COLLECTIONS:
            tag = "kp"
        result = await providers.catalog.tv_list(kind, page, language, tag)
    except ServiceError as e:
        raise EnvelopeError.wrap(e, tag, started) from e
    return envelope.unified_search(result, tag, started)


def _list_route(kind: str):
    async def handler(
        page: int = Query(1, ge=1),
        lang: str | None = Query(None),
        language: str | None = Query(None),
        source: str | None = Query(None, description="kp or tmdb; kp serves popular and top-rated from Kinopoisk collections"),
        providers: Providers = Depends(get_providers),
    ):
        return await _tv_list(kind, page, lang or language, source, providers)

    handler.__name__ = f"tv_{kind.replace('-', '_')}"
    return handler


for _kind in TV_LISTS:
    router.add_api_route(f"/{_kind}", _list_route(_kind), methods=["GET"])


@router.get("/{tv_id}", summary="TV show by id")
async def get_tv(
    tv_id: str,
    lang: str | None = Query(None),
    language: str | None = Query(None),
    source: str | None = Query(None),
    id_type: str | None = Query(None, description="Legacy spelling of source"),
    providers: Providers = Depends(get_providers),
):
    """Same id rules as movies. With an explicit ``id_type=kp`` a Kinopoisk show whose
    TMDB id resolves is answered with the TMDB record, tagged ``tmdb``.
    """
    started = time.monotonic()
    language = normalize_language(lang or language)
    chosen = ""
    try:
        content_id = parse_content_id(tv_id)
        chosen = providers.catalog.select(content_id, source or id_type, language)
        upgrade = (id_type or "").strip().lower() == "kp"
        content, tag = await providers.catalog.get_tv(chosen, content_id.value, language, upgrade=upgrade)
    except ServiceError as e:
        raise EnvelopeError.wrap(e, chosen, started) from e
    return envelope.unified(content, tag, started)


async def _related(tv_id: str, relation: str, page: int, lang: str | None, providers: Providers):
    started = time.monotonic()
    try:
        content_id = parse_content_id(tv_id)
        result = await providers.catalog.related("tv", content_id, relation, page, normalize_language(lang))
    except ServiceError as e:
        raise EnvelopeError.wrap(e, "tmdb", started) from e
    return envelope.unified_search(result, "tmdb", started)


@router.get("/{tv_id}/recommendations")
async def tv_recommendations(
    tv_id: str,
    page: int = Query(1, ge=1),
    lang: str | None = Query(None),
    language: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    return await _related(tv_id, "recommendations", page, lang or language, providers)


@router.get("/{tv_id}/similar")
async def similar_tv(
    tv_id: str,
    page: int = Query(1, ge=1),
    lang: str | None = Query(None),
    language: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    return await _related(tv_id, "similar", page, lang or language, providers)


@router.get("/{tv_id}/external-ids")
async def tv_external_ids(
    tv_id: str,
    lang: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    content_id = parse_content_id(tv_id)
    ids = await providers.catalog.external_ids(content_id, "tv", normalize_language(lang))
    return envelope.ok(ids)
