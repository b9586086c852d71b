import time

from fastapi import APIRouter, Depends, Query

from app.api import envelope
from app.exceptions import EnvelopeError, ServiceError
from app.services.catalog import normalize_language
from app.services.registry import Providers, get_providers

router = APIRouter(prefix="/api/v1/search", tags=["search"])


@router.get("")
async def unified_search(
    query: str = Query(..., min_length=1),
    source: str | None = Query(None, description="kp or tmdb; chosen from the language when omitted"),
    page: int = Query(1, ge=1),
    lang: str | None = Query(None),
    language: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    started = time.monotonic()
    language = normalize_language(lang or language)
    chosen = ""
    try:
        chosen = providers.catalog.select(None, source, language)
        result = await providers.catalog.search(chosen, query, page, language)
    except ServiceError as e:
        raise EnvelopeError.wrap(e, chosen, started, query) from e
    return envelope.unified_search(result, chosen, started, query)


@router.get("/multi")
async def multi_search(
    query: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    lang: str | None = Query(None),
    language: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    """Movies and shows from TMDB; people and untitled rows are dropped."""
    started = time.monotonic()
    language = normalize_language(lang or language)
    try:
        result = await providers.catalog.search("tmdb", query, page, language)
    except ServiceError as e:
        raise EnvelopeError.wrap(e, "tmdb", started, query) from e
    return envelope.unified_search(result, "tmdb", started, query)
