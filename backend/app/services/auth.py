"""Accounts: password hashing, JWT access tokens, rotating refresh tokens,
email verification codes and Google sign-in."""
from __future__ import annotations
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import urlencode

import bcrypt
import jwt
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import as_aware, utcnow
from app.exceptions import AuthError, ConflictError, InvalidInputError, MisconfigurationError, NotFoundError
from app.models.favorite import Favorite
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.schemas.auth import LoginRequest, ProfileUpdate, RegisterRequest, VerifyEmailRequest
from app.services import background
from app.services.mailer import Mailer
from app.services.reactions import ReactionService
from app.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
USER_ID_CLAIMS = ("unified_id", "UnifiedID", "user_id")
# bcrypt ignores everything past 72 bytes and bcrypt>=4.1 refuses longer input
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_verification_code() -> str:
    return f"{secrets.randbelow(900000) + 100000:06d}"


class TokenExpiredError(AuthError):
    def __init__(self):
        super().__init__("Invalid token")


class InvalidTokenError(AuthError):
    def __init__(self):
        super().__init__("Invalid token")


class JWTService:
    def __init__(self, secret: str, access_token_days: int = 7):
        self._secret = secret
        self._lifetime = timedelta(days=access_token_days)

    def create_access_token(self, user_id: str) -> str:
        now = utcnow()
        payload = {
            "unified_id": user_id,
            "user_id": user_id,
            "iat": now,
            "exp": now + self._lifetime,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def decode(self, token: str) -> dict:
        try:
            return jwt.decode(token, self._secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e

    def user_id(self, token: str) -> str:
        """Subject of a valid token; newer tokens carry ``unified_id``."""
        claims = self.decode(token)
        for claim in USER_ID_CLAIMS:
            value = claims.get(claim)
            if isinstance(value, str) and value:
                return value
        raise InvalidTokenError()


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass
class GoogleUser:
    sub: str
    email: str
    name: str = ""
    picture: str = ""


class GoogleOAuthClient(UpstreamClient):
    service_name = "Google"

    AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
    SCOPES = "openid email profile"

    def __init__(self, client_id: str, client_secret: str, redirect_url: str, timeout: float = 10):
        super().__init__("", timeout)
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_url)

    def login_url(self, state: str) -> str:
        if not self.configured:
            raise MisconfigurationError("GOOGLE_CLIENT_ID")
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "scope": self.SCOPES,
            "state": state,
            "access_type": "offline",
        })
        return f"{self.AUTH_URL}?{query}"

    async def exchange_code(self, code: str) -> str:
        data = await self._post(self.TOKEN_URL, data={
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_url,
            "grant_type": "authorization_code",
        })
        token = (data or {}).get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthError("failed to exchange code", 400)
        return token

    async def user_info(self, access_token: str) -> GoogleUser:
        data = await self._get(self.USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
        if not isinstance(data, dict) or not data.get("email"):
            raise AuthError("email not provided by Google", 400)
        return GoogleUser(
            sub=str(data.get("sub") or ""),
            email=data["email"],
            name=data.get("name") or "",
            picture=data.get("picture") or "",
        )


class AuthService:
    def __init__(
        self,
        jwt_service: JWTService,
        mailer: Mailer | None = None,
        google: GoogleOAuthClient | None = None,
        refresh_token_days: int = 30,
        verification_code_minutes: int = 10,
        frontend_url: str = "",
    ):
        self.jwt = jwt_service
        self.mailer = mailer
        self.google = google
        self.refresh_lifetime = timedelta(days=refresh_token_days)
        self.code_lifetime = timedelta(minutes=verification_code_minutes)
        self.frontend_url = frontend_url

    # ── Users ───────────────────────────────────────────────────────────────

    async def find_by_email(self, db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalars().first()

    async def get_user(self, db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user

    def _send_code(self, email: str, code: str):
        if self.mailer is None or not self.mailer.configured:
            logger.warning("Mail is not configured; verification code not sent")
            return
        background.spawn(self.mailer.send_verification(email, code), "verification-mail")

    async def register(self, db: AsyncSession, data: RegisterRequest) -> User:
        email = data.email.lower()
        if await self.find_by_email(db, email) is not None:
            raise ConflictError("User already exists")
        code = generate_verification_code()
        user = User(
            email=email,
            password_hash=hash_password(data.password),
            name=data.name,
            verified=False,
            verification_code=code,
            verification_expires=utcnow() + self.code_lifetime,
            provider="local",
        )
        db.add(user)
        await db.commit()
        logger.info(f"Registered user {user.id}")
        self._send_code(email, code)
        return user

    async def login(self, db: AsyncSession, data: LoginRequest, user_agent: str = "", ip_address: str = "") -> tuple[User, TokenPair]:
        user = await self.find_by_email(db, data.email)
        if user is None:
            raise AuthError("User not found", 400)
        if not user.verified:
            raise AuthError("Account not activated. Please verify your email.", 403)
        if not verify_password(data.password, user.password_hash):
            raise AuthError("Invalid password", 400)
        return user, await self.issue_tokens(db, user, user_agent, ip_address)

    async def verify_email(self, db: AsyncSession, data: VerifyEmailRequest):
        user = await self.find_by_email(db, data.email)
        if user is None:
            raise NotFoundError("user not found")
        if user.verified:
            raise InvalidInputError("Email already verified")
        expires = as_aware(user.verification_expires)
        if (
            not user.verification_code
            or not secrets.compare_digest(user.verification_code, data.code.strip())
            or expires is None
            or expires < utcnow()
        ):
            raise InvalidInputError("invalid or expired verification code")
        user.verified = True
        user.verification_code = None
        user.verification_expires = None
        await db.commit()

    async def resend_code(self, db: AsyncSession, email: str):
        user = await self.find_by_email(db, email)
        if user is None:
            raise NotFoundError("user not found")
        if user.verified:
            raise InvalidInputError("email already verified")
        code = generate_verification_code()
        user.verification_code = code
        user.verification_expires = utcnow() + self.code_lifetime
        await db.commit()
        self._send_code(user.email, code)

    async def update_profile(self, db: AsyncSession, user_id: str, data: ProfileUpdate) -> User:
        user = await self.get_user(db, user_id)
        if data.name is not None:
            user.name = data.name
        if data.avatar is not None:
            user.avatar = data.avatar
        await db.commit()
        await db.refresh(user)
        return user

    async def delete_account(self, db: AsyncSession, user_id: str, reactions: ReactionService):
        user = await self.get_user(db, user_id)
        removed = await reactions.remove_all(db, user_id)
        await db.execute(delete(Favorite).where(Favorite.user_id == user_id))
        await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
        await db.delete(user)
        await db.commit()
        logger.info(f"Deleted user {user_id} with {removed} reactions")

    # ── Tokens ──────────────────────────────────────────────────────────────

    async def issue_tokens(self, db: AsyncSession, user: User, user_agent: str = "", ip_address: str = "") -> TokenPair:
        now = utcnow()
        await db.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user.id, RefreshToken.expires_at < now)
        )
        refresh = RefreshToken(
            token=secrets.token_urlsafe(48),
            user_id=user.id,
            expires_at=now + self.refresh_lifetime,
            user_agent=user_agent[:512] or None,
            ip_address=ip_address[:64] or None,
        )
        db.add(refresh)
        await db.commit()
        return TokenPair(access_token=self.jwt.create_access_token(user.id), refresh_token=refresh.token)

    async def refresh(self, db: AsyncSession, token: str, user_agent: str = "", ip_address: str = "") -> TokenPair:
        result = await db.execute(select(RefreshToken).where(RefreshToken.token == token))
        row = result.scalars().first()
        if row is None or as_aware(row.expires_at) < utcnow():
            raise AuthError("invalid or expired refresh token")
        user = await db.get(User, row.user_id)
        await db.delete(row)
        if user is None:
            await db.commit()
            raise AuthError("invalid or expired refresh token")
        return await self.issue_tokens(db, user, user_agent, ip_address)

    async def revoke(self, db: AsyncSession, user_id: str, token: str):
        await db.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user_id, RefreshToken.token == token)
        )
        await db.commit()

    async def revoke_all(self, db: AsyncSession, user_id: str):
        await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
        await db.commit()

    # ── Google ──────────────────────────────────────────────────────────────

    def google_login_url(self, state: str) -> str:
        if self.google is None:
            raise MisconfigurationError("GOOGLE_CLIENT_ID")
        return self.google.login_url(state)

    async def google_sign_in(self, db: AsyncSession, code: str, user_agent: str = "", ip_address: str = "") -> tuple[User, TokenPair]:
        """Link by Google id, then by email; otherwise create a verified user."""
        if self.google is None or not self.google.configured:
            raise MisconfigurationError("GOOGLE_CLIENT_ID")
        access_token = await self.google.exchange_code(code)
        info = await self.google.user_info(access_token)

        user = None
        if info.sub:
            result = await db.execute(select(User).where(User.google_id == info.sub))
            user = result.scalars().first()
        if user is None:
            user = await self.find_by_email(db, info.email)

        if user is None:
            user = User(
                email=info.email.lower(),
                name=info.name,
                avatar=info.picture or None,
                verified=True,
                provider="google",
                google_id=info.sub or None,
            )
            db.add(user)
            logger.info("Created user from Google sign-in")
        else:
            user.verified = True
            user.provider = "google"
            user.google_id = info.sub or user.google_id
            if not user.name and info.name:
                user.name = info.name
            if not user.avatar and info.picture:
                user.avatar = info.picture
        await db.commit()
        await db.refresh(user)
        return user, await self.issue_tokens(db, user, user_agent, ip_address)

    def frontend_redirect(self, tokens: TokenPair | None = None, error: str = "") -> str | None:
        if not self.frontend_url:
            return None
        if error or tokens is None:
            query = urlencode({"oauth": "google", "error": error or "auth_failed"})
            return f"{self.frontend_url}/login?{query}"
        query = urlencode({
            "provider": "google",
            "token": tokens.access_token,
            "refreshToken": tokens.refresh_token,
        })
        return f"{self.frontend_url}/auth/callback?{query}"
