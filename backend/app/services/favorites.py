"""Per-user favorites with best-effort catalog enrichment on add."""
from __future__ import annotations
import logging
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import upsert_insert
from app.exceptions import InvalidInputError, ServiceError
from app.models.favorite import Favorite
from app.services import mappers
from app.services.catalog import parse_content_id
from app.services.images import build_image_proxy_url
from app.services.kinopoisk import KinopoiskClient
from app.services.tmdb import TMDBClient

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("movie", "tv")


def validate_media_type(media_type: str | None) -> str:
    value = (media_type or "movie").strip().lower()
    if value not in MEDIA_TYPES:
        raise InvalidInputError("Media type must be 'movie' or 'tv'")
    return value


@dataclass
class FavoriteDetails:
    title: str = ""
    name_ru: str | None = None
    name_en: str | None = None
    poster_path: str | None = None
    year: int = 0
    rating: float | None = None


class FavoritesService:
    def __init__(self, tmdb: TMDBClient | None = None, kinopoisk: KinopoiskClient | None = None):
        self.tmdb = tmdb
        self.kinopoisk = kinopoisk

    async def details(self, media_id: str, media_type: str) -> FavoriteDetails:
        """Title, poster and rating from the catalog that owns the id; empty on failure."""
        try:
            content_id = parse_content_id(media_id)
        except InvalidInputError:
            return FavoriteDetails()
        try:
            if content_id.source == "kp":
                if self.kinopoisk is None:
                    return FavoriteDetails()
                film = await self.kinopoisk.get_film(content_id.value)
                return FavoriteDetails(
                    title=mappers.kp_title(film),
                    name_ru=film.name_ru or None,
                    name_en=(film.name_en or film.name_original) or None,
                    poster_path=mappers.kp_poster_url(film.kinopoisk_id or content_id.value),
                    year=film.year or film.start_year or 0,
                    rating=film.rating_kinopoisk or None,
                )
            if self.tmdb is None:
                return FavoriteDetails()
            if media_type == "tv":
                show = await self.tmdb.get_tv(content_id.value, "ru-RU")
                title, original, poster, date, rating = (
                    show.name, show.original_name, show.poster_path, show.first_air_date, show.vote_average
                )
            else:
                movie = await self.tmdb.get_movie(content_id.value, "ru-RU")
                title, original, poster, date, rating = (
                    movie.title, movie.original_title, movie.poster_path, movie.release_date, movie.vote_average
                )
            return FavoriteDetails(
                title=title,
                name_ru=title or None,
                name_en=original or None,
                poster_path=build_image_proxy_url(poster) or None,
                year=mappers.leading_year(date),
                rating=rating or None,
            )
        except ServiceError as e:
            logger.info(f"Favorite enrichment for {media_type}/{media_id} failed: {e}")
            return FavoriteDetails()

    async def list_for_user(self, db: AsyncSession, user_id: str) -> list[Favorite]:
        result = await db.execute(
            select(Favorite).where(Favorite.user_id == user_id).order_by(Favorite.created_at.desc(), Favorite.id.desc())
        )
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, user_id: str, media_id: str, media_type: str) -> Favorite | None:
        result = await db.execute(
            select(Favorite).where(
                Favorite.user_id == user_id,
                Favorite.media_id == media_id,
                Favorite.media_type == media_type,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def add(self, db: AsyncSession, user_id: str, media_id: str, media_type: str) -> Favorite:
        """Idempotent: a repeated add refreshes the cached details of the single row."""
        media_type = validate_media_type(media_type)
        info = await self.details(media_id, media_type)
        values = {
            "title": info.title,
            "name_ru": info.name_ru,
            "name_en": info.name_en,
            "poster_path": info.poster_path,
            "year": info.year,
            "rating": info.rating,
        }
        insert = upsert_insert(db, Favorite).values(user_id=user_id, media_id=media_id, media_type=media_type, **values)
        updates = {k: v for k, v in values.items() if v}
        if updates:
            stmt = insert.on_conflict_do_update(index_elements=["user_id", "media_id", "media_type"], set_=updates)
        else:
            stmt = insert.on_conflict_do_nothing(index_elements=["user_id", "media_id", "media_type"])
        await db.execute(stmt)
        await db.commit()
        return await self.get(db, user_id, media_id, media_type)

    async def remove(self, db: AsyncSession, user_id: str, media_id: str, media_type: str):
        media_type = validate_media_type(media_type)
        await db.execute(
            delete(Favorite).where(
                Favorite.user_id == user_id,
                Favorite.media_id == media_id,
                Favorite.media_type == media_type,
            )
        )
        await db.commit()

    async def is_favorite(self, db: AsyncSession, user_id: str, media_id: str, media_type: str) -> bool:
        media_type = validate_media_type(media_type)
        return await self.get(db, user_id, media_id, media_type) is not None
