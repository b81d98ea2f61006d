import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt

from homevault.core.backend import AuthSession, BackendClient, BackendError, get_backend
from homevault.core.config import settings
from homevault.core.deps import AuthContext, get_auth_context
from homevault.core.events import Event, EventBus, EventKind, get_event_bus
from homevault.core.ratelimit import limiter
from homevault.core.redis import (
    clear_signin_failures,
    is_locked_out,
    record_signin_failure,
    revoke_token,
)
from homevault.schemas.auth import SignIn, SignUp, SignUpResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# httpOnly cookie settings — strict+secure in production, lax in dev for cross-port localhost
_SECURE = settings.environment != "development"
_SAMESITE = "strict" if settings.environment != "development" else "lax"


def _set_session_cookies(response: Response, session: AuthSession) -> None:
    response.set_cookie(
        key="access_token",
        value=session.access_token,
        httponly=True,
        secure=_SECURE,
        samesite=_SAMESITE,
        max_age=session.expires_in or settings.access_token_expire_minutes * 60,
        path="/",
    )
    response.set_cookie(
        key="refresh_token",
        value=session.refresh_token,
        httponly=True,
        secure=_SECURE,
        samesite=_SAMESITE,
        max_age=settings.refresh_token_expire_days * 86400,
        path="/",
    )


def _clear_session_cookies(response: Response) -> None:
    response.delete_cookie(key="access_token", path="/")
    response.delete_cookie(key="refresh_token", path="/")


def _remaining_lifetime(access_token: str) -> int:
    """Seconds until the token expires, from its exp claim.

    The backend has already verified the token, so the claims are read
    without checking the signature.
    """
    try:
        exp = jwt.get_unverified_claims(access_token).get("exp")
    except JWTError:
        exp = None
    if not isinstance(exp, (int, float)):
        return settings.access_token_expire_minutes * 60
    return int(exp - time.time())


@router.post("/sign-up", response_model=SignUpResponse, status_code=201)
@limiter.limit("5/hour")
async def sign_up(
    request: Request,
    payload: SignUp,
    response: Response,
    backend: BackendClient = Depends(get_backend),
    bus: EventBus = Depends(get_event_bus),
):
    user, session = await backend.sign_up(
        payload.email, payload.password, payload.full_name, payload.phone
    )
    if session is None:
        logger.info("Account %s created, awaiting email confirmation", user.id)
        return SignUpResponse(id=user.id, email=user.email, session_active=False)

    _set_session_cookies(response, session)
    bus.publish(Event(EventKind.SESSION_STARTED, user.id))
    logger.info("Account %s created and signed in", user.id)
    return SignUpResponse(id=user.id, email=user.email, session_active=True)


@router.post("/sign-in", response_model=UserResponse)
@limiter.limit("10/minute;30/hour")
async def sign_in(
    request: Request,
    payload: SignIn,
    response: Response,
    backend: BackendClient = Depends(get_backend),
    bus: EventBus = Depends(get_event_bus),
):
    # Lockout check before hitting the backend
    if await is_locked_out(payload.email):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many failed sign-in attempts. Try again in 15 minutes.",
        )

    try:
        session = await backend.sign_in(payload.email, payload.password)
    except BackendError:
        await record_signin_failure(payload.email)
        raise

    await clear_signin_failures(payload.email)
    _set_session_cookies(response, session)
    bus.publish(Event(EventKind.SESSION_STARTED, session.user.id))
    logger.info("User %s signed in", session.user.id)
    return UserResponse(id=session.user.id, email=session.user.email)


@router.post("/refresh", response_model=UserResponse)
async def refresh_session(
    request: Request,
    response: Response,
    backend: BackendClient = Depends(get_backend),
):
    refresh = request.cookies.get("refresh_token")
    if not refresh:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No refresh token",
        )
    try:
        session = await backend.refresh(refresh)
    except BackendError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)

    _set_session_cookies(response, session)
    return UserResponse(id=session.user.id, email=session.user.email)


@router.post("/sign-out", status_code=204)
async def sign_out(
    response: Response,
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
    bus: EventBus = Depends(get_event_bus),
):
    try:
        await backend.sign_out(ctx.access_token)
    except BackendError as e:
        # The local session ends regardless, same as the backend SDK does
        logger.warning("Backend sign-out for %s failed: %s", ctx.user_id, e.message)

    # The access token stays valid at the backend until it expires
    await revoke_token(ctx.access_token, _remaining_lifetime(ctx.access_token))
    _clear_session_cookies(response)
    bus.publish(Event(EventKind.SESSION_ENDED, ctx.user_id))
    logger.info("User %s signed out", ctx.user_id)


@router.get("/me", response_model=UserResponse)
async def get_me(ctx: AuthContext = Depends(get_auth_context)):
    return UserResponse(id=ctx.user.id, email=ctx.user.email)
