from datetime import timedelta

from sqlalchemy import select

from app.database import utcnow
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.services.scheduler import purge_stale_accounts


def make_user(email, verified=False, provider="local", age_days=0):
    return User(
        email=email,
        name=email.split("@")[0],
        verified=verified,
        provider=provider,
        created_at=utcnow() - timedelta(days=age_days),
    )


async def test_purge_stale_accounts(db):
    stale = make_user("stale@example.com", age_days=10)
    fresh = make_user("fresh@example.com", age_days=1)
    verified = make_user("old@example.com", verified=True, age_days=30)
    google = make_user("google@example.com", provider="google", age_days=30)
    db.add_all([stale, fresh, verified, google])
    await db.flush()
    db.add_all([
        RefreshToken(token="expired", user_id=verified.id, expires_at=utcnow() - timedelta(hours=1)),
        RefreshToken(token="live", user_id=verified.id, expires_at=utcnow() + timedelta(days=1)),
    ])
    await db.commit()

    users, tokens = await purge_stale_accounts(db, stale_days=7)

    assert (users, tokens) == (1, 1)
    emails = (await db.execute(select(User.email).order_by(User.email))).scalars().all()
    assert emails == ["fresh@example.com", "google@example.com", "old@example.com"]
    remaining = (await db.execute(select(RefreshToken.token))).scalars().all()
    assert remaining == ["live"]
