from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import HTMLResponse

from app.services import webtorrent
from app.services.registry import Providers, get_providers

router = APIRouter(prefix="/api/v1/webtorrent", tags=["webtorrent"])


@router.get("/player", response_class=HTMLResponse)
async def open_player(
    magnet: str = Query(""),
    x_magnet_link: str = Header("", alias="X-Magnet-Link"),
):
    return HTMLResponse(webtorrent.render_player(x_magnet_link or magnet))


@router.get("/metadata")
async def media_metadata(
    query: str = Query(""),
    providers: Providers = Depends(get_providers),
):
    metadata = await providers.webtorrent.metadata(query)
    return {"success": True, "data": metadata.model_dump(by_alias=True, exclude_none=True)}
