from fastapi import APIRouter

from app.config import get_settings

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health")
async def health():
    settings = get_settings()
    return {"status": "ok", "app": settings.app_name, "version": settings.api_version}
