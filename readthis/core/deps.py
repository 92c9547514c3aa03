from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from readthis.core.security import decode_token, user_id_from_claims

bearer_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


@dataclass(frozen=True)
class AuthUser:
    """Caller identity taken from the access token. Not re-read from the DB."""

    id: int
    email: str | None = None
    username: str | None = None
    image_url: str | None = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(token: str | None = Depends(bearer_scheme)) -> AuthUser:
    if not token:
        raise _unauthorized("Unauthorized: No token provided")

    try:
        payload = decode_token(token)
    except JWTError:
        raise _unauthorized("Unauthorized: Token expired or invalid")

    # Tokens from the previous signer carry no type claim.
    if payload.get("type", "access") != "access":
        raise _unauthorized("Unauthorized: Token expired or invalid")

    user_id = user_id_from_claims(payload)
    if user_id is None:
        raise _unauthorized("Unauthorized: Invalid user id in token")

    return AuthUser(
        id=user_id,
        email=payload.get("email"),
        username=payload.get("username"),
        image_url=payload.get("imageUrl"),
    )
