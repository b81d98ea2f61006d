from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status

from homevault.core.backend import AuthUser, BackendClient, BackendError, get_backend
from homevault.core.redis import is_revoked


@dataclass(frozen=True)
class AuthContext:
    """The signed-in owner for the current request."""

    user: AuthUser
    access_token: str

    @property
    def user_id(self) -> str:
        return self.user.id


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get("access_token")
    if token:
        return token
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return None


async def get_auth_context(
    request: Request,
    backend: BackendClient = Depends(get_backend),
) -> AuthContext:
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    if await is_revoked(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has ended",
        )
    try:
        user = await backend.get_user(token)
    except BackendError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return AuthContext(user=user, access_token=token)
