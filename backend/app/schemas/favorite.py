from datetime import datetime

from app.schemas.unified import CamelModel


class FavoriteResponse(CamelModel):
    model_config = {"from_attributes": True}

    id: int
    user_id: str
    media_id: str
    media_type: str
    title: str = ""
    name_ru: str | None = None
    name_en: str | None = None
    poster_path: str | None = None
    year: int = 0
    rating: float | None = None
    created_at: datetime


class FavoriteCheck(CamelModel):
    is_favorite: bool
