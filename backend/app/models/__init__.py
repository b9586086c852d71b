from app.models.user import User
from app.models.refresh_token import RefreshToken
from app.models.favorite import Favorite
from app.models.reaction import Reaction, REACTION_TYPES

__all__ = [
    "User",
    "RefreshToken",
    "Favorite",
    "Reaction",
    "REACTION_TYPES",
]
