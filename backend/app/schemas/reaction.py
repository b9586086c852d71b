from datetime import datetime

from pydantic import BaseModel

from app.schemas.unified import CamelModel


class ReactionRequest(BaseModel):
    type: str


class ReactionResponse(CamelModel):
    model_config = {"from_attributes": True}

    id: int
    user_id: str
    media_type: str
    media_id: str
    type: str
    created_at: datetime
    updated_at: datetime


class ReactionCounts(BaseModel):
    fire: int = 0
    nice: int = 0
    think: int = 0
    bore: int = 0
    shit: int = 0
