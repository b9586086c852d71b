from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, utcnow


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("user_id", "media_id", "media_type", name="uq_favorites_user_media_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    media_id: Mapped[str] = mapped_column(String(64), nullable=False)    # "550", "tmdb_550" or "kp_326"
    media_type: Mapped[str] = mapped_column(String(8), nullable=False)   # "movie" | "tv"
    title: Mapped[str] = mapped_column(String(512), default="")
    name_ru: Mapped[str | None] = mapped_column(String(512))
    name_en: Mapped[str | None] = mapped_column(String(512))
    poster_path: Mapped[str | None] = mapped_column(String(1024))
    year: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    rating: Mapped[float | None] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
