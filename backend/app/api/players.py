import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from app.exceptions import InvalidInputError, ServiceError
from app.services import players
from app.services.registry import Providers, get_providers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/players", tags=["players"])
stream_router = APIRouter(prefix="/api/v1/stream", tags=["players"])


def _page(embed: players.Embed | str, title: str) -> HTMLResponse:
    return HTMLResponse(players.render_player_page(embed, title))


@router.get("/alloha/{id_type}/{media_id}", response_class=HTMLResponse)
async def alloha_player(
    id_type: str,
    media_id: str,
    season: str | None = Query(None),
    episode: str | None = Query(None),
    translation: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    embed = await providers.alloha.embed(id_type, media_id, season, episode, translation)
    logger.info(f"Served Alloha player for {id_type}/{media_id}")
    return _page(embed, "Alloha Player")


@router.get("/lumex/{id_type}/{media_id}", response_class=HTMLResponse)
async def lumex_player(
    id_type: str,
    media_id: str,
    season: str | None = Query(None),
    episode: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    return _page(providers.lumex.embed(id_type, media_id, season, episode), "Lumex Player")


@router.get("/vibix/{id_type}/{media_id}", response_class=HTMLResponse)
async def vibix_player(
    id_type: str,
    media_id: str,
    season: str | None = Query(None),
    episode: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    embed = await providers.vibix.embed(id_type, media_id, season, episode)
    return _page(embed, "Vibix Player")


@router.get("/vidsrc/{media_type}/{imdb_id}", response_class=HTMLResponse)
async def vidsrc_player(
    media_type: str,
    imdb_id: str,
    season: str | None = Query(None),
    episode: str | None = Query(None),
):
    return _page(players.vidsrc_url(media_type, imdb_id, season, episode), "Vidsrc Player")


@router.get("/vidlink/movie/{imdb_id}", response_class=HTMLResponse)
async def vidlink_movie_player(imdb_id: str):
    return _page(players.vidlink_movie_url(imdb_id), "Vidlink Player")


@router.get("/vidlink/tv/{tmdb_id}", response_class=HTMLResponse)
async def vidlink_tv_player(
    tmdb_id: str,
    season: str | None = Query(None),
    episode: str | None = Query(None),
):
    return _page(players.vidlink_tv_url(tmdb_id, season, episode), "Vidlink Player")


@router.get("/rgshows/{tmdb_id}", response_class=HTMLResponse)
async def rgshows_movie_player(tmdb_id: str, providers: Providers = Depends(get_providers)):
    result = await providers.rgshows.movie_stream(tmdb_id)
    return _page(result.stream_url, "RgShows Player")


@router.get("/rgshows/{tmdb_id}/{season}/{episode}", response_class=HTMLResponse)
async def rgshows_tv_player(tmdb_id: str, season: int, episode: int, providers: Providers = Depends(get_providers)):
    result = await providers.rgshows.tv_stream(tmdb_id, season, episode)
    return _page(result.stream_url, "RgShows Player")


@router.get("/iframevideo/{kinopoisk_id}/{imdb_id}", response_class=HTMLResponse)
async def iframevideo_player(kinopoisk_id: str, imdb_id: str, providers: Providers = Depends(get_providers)):
    result = await providers.iframevideo.stream(kinopoisk_id, imdb_id)
    return _page(result.stream_url, "IframeVideo Player")


@stream_router.get("/{provider}/{tmdb_id}", response_model=players.StreamResult, response_model_exclude_none=True)
async def stream_api(
    provider: str,
    tmdb_id: str,
    season: int | None = Query(None),
    episode: int | None = Query(None),
    kinopoisk_id: str | None = Query(None),
    imdb_id: str | None = Query(None),
    providers: Providers = Depends(get_providers),
):
    """Direct stream URL as JSON. Provider failures come back as ``success: false``."""
    if provider == "iframevideo":
        if not kinopoisk_id and not imdb_id:
            raise InvalidInputError("kinopoisk_id or imdb_id query param is required for IframeVideo")
        call = providers.iframevideo.stream(kinopoisk_id or "", imdb_id or "")
    elif provider == "rgshows":
        if season is not None and episode is not None:
            call = providers.rgshows.tv_stream(tmdb_id, season, episode)
        else:
            call = providers.rgshows.movie_stream(tmdb_id)
    else:
        raise InvalidInputError("Unsupported provider")
    try:
        return await call
    except ServiceError as e:
        logger.info(f"Stream lookup via {provider} for {tmdb_id} failed: {e}")
        return players.StreamResult(success=False, provider=provider, error=str(e))
