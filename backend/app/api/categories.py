import time

from fastapi import APIRouter, Depends, Query

from app.api import envelope
from app.exceptions import EnvelopeError, InvalidInputError, ServiceError
from app.services.catalog import normalize_language
from app.services.registry import Providers, get_providers

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


@router.get("")
async def list_categories(
    lang: str | None = Query(None),
    language: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    categories = await providers.catalog.categories(normalize_language(lang or language))
    return envelope.ok(categories)


async def _category_media(category_id: int, media_type: str, page: int, lang: str | None, providers: Providers):
    started = time.monotonic()
    try:
        if media_type not in ("movie", "tv"):
            raise InvalidInputError("Media type must be 'movie' or 'tv'")
        result = await providers.catalog.category_media(category_id, media_type, page, normalize_language(lang))
    except ServiceError as e:
        raise EnvelopeError.wrap(e, "tmdb", started) from e
    return envelope.unified_search(result, "tmdb", started)


@router.get("/{category_id}/media")
async def category_media(
    category_id: int,
    type: str = Query("movie"),
    page: int = Query(1, ge=1),
    lang: str | None = Query(None),
    language: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    return await _category_media(category_id, type.lower(), page, lang or language, providers)


@router.get("/{category_id}/movies")
async def category_movies(
    category_id: int,
    page: int = Query(1, ge=1),
    lang: str | None = Query(None),
    language: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    return await _category_media(category_id, "movie", page, lang or language, providers)
