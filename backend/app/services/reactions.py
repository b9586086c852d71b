"""User reactions stored locally and mirrored to the public cub.rip counters."""
from __future__ import annotations
import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import upsert_insert, utcnow
from app.exceptions import InvalidInputError, ServiceError
from app.models.reaction import REACTION_TYPES, Reaction
from app.schemas.reaction import ReactionCounts
from app.services import background
from app.services.favorites import validate_media_type
from app.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)


def cub_media_id(media_type: str, media_id: str) -> str:
    return f"{media_type}_{media_id}"


class CubClient(UpstreamClient):
    service_name = "Cub"

    def __init__(self, base_url: str = "https://cub.rip/api", timeout: float = 8):
        super().__init__(base_url, timeout)

    async def counts(self, cub_id: str) -> ReactionCounts:
        data = await self._get(f"reactions/get/{cub_id}")
        counts = ReactionCounts()
        rows = data.get("result") if isinstance(data, dict) else None
        for row in rows or []:
            kind = row.get("type") if isinstance(row, dict) else None
            if kind in REACTION_TYPES:
                setattr(counts, kind, int(row.get("counter") or 0))
        return counts

    async def set_reaction(self, cub_id: str, reaction_type: str):
        await self._get("reactions/set", {"mediaId": cub_id, "type": reaction_type})
        logger.info(f"Reaction mirrored: {cub_id} {reaction_type}")

    async def remove_reaction(self, cub_id: str, reaction_type: str):
        await self._get(f"reactions/remove/{cub_id}/{reaction_type}")


class ReactionService:
    def __init__(self, cub: CubClient):
        self.cub = cub

    async def counts(self, media_type: str, media_id: str) -> ReactionCounts:
        """Raw counter values; zeros when the counter service is unavailable."""
        try:
            return await self.cub.counts(cub_media_id(media_type, media_id))
        except ServiceError as e:
            logger.info(f"Reaction counts for {media_type}/{media_id} unavailable: {e}")
            return ReactionCounts()

    async def get_user_reaction(self, db: AsyncSession, user_id: str, media_type: str, media_id: str) -> Reaction | None:
        result = await db.execute(
            select(Reaction)
            .where(
                Reaction.user_id == user_id,
                Reaction.media_type == media_type,
                Reaction.media_id == media_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def set(self, db: AsyncSession, user_id: str, media_type: str, media_id: str, reaction_type: str) -> Reaction:
        media_type = validate_media_type(media_type)
        if reaction_type not in REACTION_TYPES:
            raise InvalidInputError(f"invalid reaction type: {reaction_type}")
        now = utcnow()
        stmt = (
            upsert_insert(db, Reaction)
            .values(user_id=user_id, media_type=media_type, media_id=media_id, type=reaction_type, created_at=now, updated_at=now)
            .on_conflict_do_update(
                index_elements=["user_id", "media_type", "media_id"],
                set_={"type": reaction_type, "updated_at": now},
            )
        )
        await db.execute(stmt)
        await db.commit()
        background.spawn(self.cub.set_reaction(cub_media_id(media_type, media_id), reaction_type), "reaction-mirror")
        return await self.get_user_reaction(db, user_id, media_type, media_id)

    async def remove(self, db: AsyncSession, user_id: str, media_type: str, media_id: str):
        existing = await self.get_user_reaction(db, user_id, media_type, media_id)
        if existing is None:
            return
        await db.delete(existing)
        await db.commit()
        background.spawn(
            self.cub.remove_reaction(cub_media_id(media_type, media_id), existing.type), "reaction-mirror"
        )

    async def list_for_user(self, db: AsyncSession, user_id: str, limit: int = 50) -> list[Reaction]:
        result = await db.execute(
            select(Reaction).where(Reaction.user_id == user_id).order_by(Reaction.updated_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def remove_all(self, db: AsyncSession, user_id: str) -> int:
        """Delete every reaction of the user, mirroring each removal."""
        rows = await self.list_for_user(db, user_id, limit=10_000)
        for row in rows:
            background.spawn(
                self.cub.remove_reaction(cub_media_id(row.media_type, row.media_id), row.type), "reaction-mirror"
            )
        await db.execute(delete(Reaction).where(Reaction.user_id == user_id))
        return len(rows)
