from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import AuthError
from app.models.user import User
from app.services.registry import Providers, get_providers

# Documents the scheme in OpenAPI; the header itself is checked below.
bearer_scheme = HTTPBearer(auto_error=False)


async def current_user_id(
    request: Request,
    _: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    providers: Providers = Depends(get_providers),
) -> str:
    header = request.headers.get("Authorization", "").strip()
    if not header:
        raise AuthError("Authorization header required")
    scheme, _sep, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Bearer token required")
    return providers.auth.jwt.user_id(token.strip())


async def current_user(
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
) -> User:
    return await providers.auth.get_user(db, user_id)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP", "")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else ""


def user_agent(request: Request) -> str:
    return request.headers.get("User-Agent", "")
