import logging
import secrets

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import envelope
from app.api.deps import client_ip, current_user, current_user_id, user_agent
from app.database import get_db
from app.exceptions import ServiceError
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    ProfileUpdate,
    RefreshTokenRequest,
    RegisterRequest,
    ResendCodeRequest,
    TokenPairResponse,
    UserResponse,
    VerifyEmailRequest,
)
from app.services.auth import TokenPair
from app.services.registry import Providers, get_providers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

STATE_COOKIE = "oauth_state"
STATE_COOKIE_MAX_AGE = 600


def _auth_response(user: User, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(
        token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    await providers.auth.register(db, data)
    return envelope.ok(message="Registered. Check email for verification code.")


@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    user, tokens = await providers.auth.login(db, data, user_agent(request), client_ip(request))
    return envelope.ok(_auth_response(user, tokens), "Login successful")


@router.post("/verify")
async def verify_email(
    data: VerifyEmailRequest,
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    await providers.auth.verify_email(db, data)
    return envelope.ok(message="Email verified successfully")


@router.post("/resend-code")
async def resend_code(
    data: ResendCodeRequest,
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    await providers.auth.resend_code(db, data.email)
    return envelope.ok(message="Verification code sent to your email")


@router.post("/refresh")
async def refresh_token(
    data: RefreshTokenRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    tokens = await providers.auth.refresh(db, data.refresh_token, user_agent(request), client_ip(request))
    return envelope.ok(
        TokenPairResponse(access_token=tokens.access_token, refresh_token=tokens.refresh_token),
        "Token refreshed successfully",
    )


# ── Protected ───────────────────────────────────────────────────────────────

@router.get("/profile")
async def get_profile(user: User = Depends(current_user)):
    return envelope.ok(UserResponse.model_validate(user))


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    user = await providers.auth.update_profile(db, user_id, data)
    return envelope.ok(UserResponse.model_validate(user), "Profile updated successfully")


@router.delete("/profile")
async def delete_profile(
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    await providers.auth.delete_account(db, user_id, providers.reactions)
    return envelope.ok(message="Account deleted successfully")


@router.post("/revoke-token")
async def revoke_token(
    data: RefreshTokenRequest,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    await providers.auth.revoke(db, user_id, data.refresh_token)
    return envelope.ok(message="Token revoked successfully")


@router.post("/revoke-all-tokens")
async def revoke_all_tokens(
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    await providers.auth.revoke_all(db, user_id)
    return envelope.ok(message="All tokens revoked successfully")


# ── Google OAuth ────────────────────────────────────────────────────────────

@router.get("/google/login")
async def google_login(providers: Providers = Depends(get_providers)):
    state = secrets.token_urlsafe(24)
    response = RedirectResponse(providers.auth.google_login_url(state), status_code=302)
    response.set_cookie(STATE_COOKIE, state, max_age=STATE_COOKIE_MAX_AGE, httponly=True, path="/")
    return response


def _callback_failure(providers: Providers, reason: str, message: str):
    redirect = providers.auth.frontend_redirect(error=reason)
    if redirect:
        return RedirectResponse(redirect, status_code=302)
    return JSONResponse(status_code=400, content={"success": False, "error": message})


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str = Query(""),
    state: str = Query(""),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    """Finish Google sign-in; browsers are sent back to the front-end when one is configured."""
    expected = request.cookies.get(STATE_COOKIE, "")
    if not expected or not state or not secrets.compare_digest(expected, state):
        logger.warning("Google callback with mismatched oauth state")
        return _callback_failure(providers, "invalid_state", "invalid oauth state")
    if not code:
        return _callback_failure(providers, "auth_failed", "missing authorization code")

    try:
        user, tokens = await providers.auth.google_sign_in(db, code, user_agent(request), client_ip(request))
    except ServiceError as e:
        logger.warning(f"Google sign-in failed: {e}")
        return _callback_failure(providers, "auth_failed", str(e))

    redirect = providers.auth.frontend_redirect(tokens)
    if redirect:
        response = RedirectResponse(redirect, status_code=302)
    else:
        response = JSONResponse(envelope.ok(_auth_response(user, tokens), "Login successful"))
    response.delete_cookie(STATE_COOKIE, path="/")
    return response
