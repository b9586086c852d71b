from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.api.deps import user_agent
from app.services.registry import Providers, get_providers

router = APIRouter(prefix="/api/v1/images", tags=["images"])


@router.get("/{size}/{path:path}", response_class=StreamingResponse)
async def proxy_image(
    size: str,
    path: str,
    request: Request,
    providers: Providers = Depends(get_providers),
):
    """Catalog or absolute image URL; never fails, falls back to a placeholder."""
    payload = await providers.images.get(size, path, user_agent(request) or None)
    return StreamingResponse(
        payload.iter_bytes(),
        media_type=payload.content_type,
        headers={"Cache-Control": payload.cache_control},
    )
