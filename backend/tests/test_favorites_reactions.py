from datetime import datetime, timezone
from unittest.mock import AsyncMock

from sqlalchemy import select

from app.exceptions import UpstreamError
from app.models.reaction import Reaction
from app.models.user import User
from app.services import background, reactions

FIGHT_CLUB = {
    "id": 550,
    "title": "Бойцовский клуб",
    "original_title": "Fight Club",
    "poster_path": "/fight.jpg",
    "release_date": "1999-10-15",
    "vote_average": 8.4,
}


async def test_add_favorite_is_idempotent(client, auth_headers, providers):
    providers.tmdb._get = AsyncMock(return_value=FIGHT_CLUB)

    first = await client.post("/api/v1/favorites/tmdb_550", params={"type": "movie"}, headers=auth_headers)
    assert first.status_code == 200
    assert first.json()["message"] == "Added to favorites"
    data = first.json()["data"]
    assert data["mediaId"] == "tmdb_550"
    assert data["mediaType"] == "movie"
    assert data["title"] == "Бойцовский клуб"
    assert data["nameEn"] == "Fight Club"
    assert data["year"] == 1999
    assert data["posterPath"].startswith("/api/v1/images/")

    # a failed lookup on the second add keeps the cached details
    providers.tmdb._get = AsyncMock(side_effect=UpstreamError("TMDB", 500))
    second = await client.post("/api/v1/favorites/tmdb_550", params={"type": "movie"}, headers=auth_headers)
    assert second.status_code == 200
    assert second.json()["data"]["id"] == data["id"]
    assert second.json()["data"]["title"] == "Бойцовский клуб"

    resp = await client.get("/api/v1/favorites", headers=auth_headers)
    assert resp.json()["message"] == "Favorites retrieved successfully"
    assert [f["mediaId"] for f in resp.json()["data"]] == ["tmdb_550"]


async def test_kinopoisk_favorite_uses_kp_details(client, auth_headers, providers):
    providers.kinopoisk._get = AsyncMock(return_value={
        "kinopoiskId": 326,
        "nameRu": "Побег из Шоушенка",
        "nameOriginal": "The Shawshank Redemption",
        "year": 1994,
        "ratingKinopoisk": 9.1,
    })

    resp = await client.post("/api/v1/favorites/kp_326", headers=auth_headers)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["nameRu"] == "Побег из Шоушенка"
    assert data["rating"] == 9.1
    assert data["posterPath"] == "/api/v1/images/kp_big/326"


async def test_favorite_without_catalog_match_is_still_stored(client, auth_headers, providers):
    providers.tmdb._get = AsyncMock(side_effect=UpstreamError("TMDB", 404))

    resp = await client.post("/api/v1/favorites/1399", params={"type": "tv"}, headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["data"]["title"] == ""
    assert resp.json()["data"]["mediaType"] == "tv"


async def test_favorite_without_release_date_has_year_zero(client, auth_headers, providers):
    providers.tmdb._get = AsyncMock(return_value={**FIGHT_CLUB, "release_date": ""})

    resp = await client.post("/api/v1/favorites/tmdb_550", headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["data"]["year"] == 0


async def test_failed_lookup_stores_year_zero(client, auth_headers, providers):
    providers.kinopoisk._get = AsyncMock(side_effect=UpstreamError("Kinopoisk", 500))

    resp = await client.post("/api/v1/favorites/kp_326", headers=auth_headers)

    assert resp.json()["data"]["year"] == 0


async def test_check_and_remove_favorite(client, auth_headers, providers):
    providers.tmdb._get = AsyncMock(return_value=FIGHT_CLUB)
    await client.post("/api/v1/favorites/550", headers=auth_headers)

    resp = await client.get("/api/v1/favorites/550/check", headers=auth_headers)
    assert resp.json()["data"] == {"isFavorite": True}
    resp = await client.get("/api/v1/favorites/550/check", params={"type": "tv"}, headers=auth_headers)
    assert resp.json()["data"] == {"isFavorite": False}

    resp = await client.delete("/api/v1/favorites/550", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Removed from favorites"

    resp = await client.get("/api/v1/favorites/550/check", headers=auth_headers)
    assert resp.json()["data"] == {"isFavorite": False}


async def test_favorite_rejects_unknown_media_type(client, auth_headers):
    resp = await client.post("/api/v1/favorites/550", params={"type": "anime"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Media type must be 'movie' or 'tv'"


async def test_favorites_require_auth(client):
    resp = await client.get("/api/v1/favorites")
    assert resp.status_code == 401


async def test_set_reaction_upserts_and_mirrors(client, auth_headers, providers):
    cub = providers.reactions.cub

    first = await client.post("/api/v1/reactions/movie/550", json={"type": "fire"}, headers=auth_headers)
    assert first.status_code == 200
    assert first.json()["message"] == "Reaction set successfully"
    second = await client.post("/api/v1/reactions/movie/550", json={"type": "nice"}, headers=auth_headers)
    assert second.json()["data"]["id"] == first.json()["data"]["id"]
    assert second.json()["data"]["type"] == "nice"

    await background.drain()
    assert [c.args for c in cub.set_reaction.await_args_list] == [("movie_550", "fire"), ("movie_550", "nice")]

    resp = await client.get("/api/v1/reactions/movie/550/my-reaction", headers=auth_headers)
    assert resp.json()["data"]["type"] == "nice"

    resp = await client.get("/api/v1/reactions/my", headers=auth_headers)
    assert [(r["mediaType"], r["mediaId"], r["type"]) for r in resp.json()["data"]] == [("movie", "550", "nice")]


async def test_second_reaction_updates_the_same_row(db, providers, monkeypatch):
    user = User(email="r@example.com", name="r")
    db.add(user)
    await db.commit()
    stamps = iter([datetime(2026, 1, 1, tzinfo=timezone.utc), datetime(2026, 1, 2, tzinfo=timezone.utc)])
    monkeypatch.setattr(reactions, "utcnow", lambda: next(stamps))

    await providers.reactions.set(db, user.id, "movie", "550", "fire")
    await providers.reactions.set(db, user.id, "movie", "550", "nice")
    await background.drain()

    rows = (await db.execute(select(Reaction).execution_options(populate_existing=True))).scalars().all()
    assert len(rows) == 1
    assert rows[0].type == "nice"
    assert rows[0].updated_at.replace(tzinfo=None) == datetime(2026, 1, 2)
    assert rows[0].created_at.replace(tzinfo=None) == datetime(2026, 1, 1)


async def test_remove_reaction(client, auth_headers, providers):
    await client.post("/api/v1/reactions/tv/1399", json={"type": "think"}, headers=auth_headers)

    resp = await client.delete("/api/v1/reactions/tv/1399", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Reaction removed successfully"

    await background.drain()
    providers.reactions.cub.remove_reaction.assert_awaited_once_with("tv_1399", "think")

    resp = await client.get("/api/v1/reactions/tv/1399/my-reaction", headers=auth_headers)
    assert resp.json() == {"success": True, "data": {}}


async def test_reaction_validation(client, auth_headers):
    resp = await client.post("/api/v1/reactions/movie/550", json={"type": "love"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid reaction type: love"

    resp = await client.post("/api/v1/reactions/anime/550", json={"type": "fire"}, headers=auth_headers)
    assert resp.status_code == 400


async def test_reaction_counts_are_public(client, providers):
    providers.reactions.cub._get = AsyncMock(return_value={
        "result": [{"type": "fire", "counter": 3}, {"type": "shit", "counter": "2"}, {"type": "wow", "counter": 9}],
    })

    resp = await client.get("/api/v1/reactions/movie/550/counts")

    assert resp.status_code == 200
    assert resp.json()["data"] == {"fire": 3, "nice": 0, "think": 0, "bore": 0, "shit": 2}
    assert providers.reactions.cub._get.await_args.args[0] == "reactions/get/movie_550"


async def test_reaction_counts_fall_back_to_zeros(client, providers):
    providers.reactions.cub._get = AsyncMock(side_effect=UpstreamError("Cub", 503))

    resp = await client.get("/api/v1/reactions/movie/550/counts")

    assert resp.status_code == 200
    assert set(resp.json()["data"].values()) == {0}


async def test_account_deletion_removes_mirrored_reactions(client, auth_headers, providers):
    await client.post("/api/v1/reactions/movie/550", json={"type": "fire"}, headers=auth_headers)
    await background.drain()

    resp = await client.delete("/api/v1/auth/profile", headers=auth_headers)
    assert resp.status_code == 200

    await background.drain()
    providers.reactions.cub.remove_reaction.assert_awaited_once_with("movie_550", "fire")
