import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from passlib.context import CryptContext

from readthis.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGO = "HS256"

# Stored instead of a hash for accounts created through Google sign-in.
OAUTH_PASSWORD_SENTINEL = "google-auth"

# Claim names used by the previous token signer; read-only.
LEGACY_ID_CLAIMS = ("id", "_id")


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash or password_hash == OAUTH_PASSWORD_SENTINEL:
        return False
    return pwd_context.verify(password, password_hash)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_jti() -> str:
    return secrets.token_hex(16)  # 32 chars


def refresh_expiry() -> datetime:
    return _now() + timedelta(days=settings.REFRESH_TTL_DAYS)


def _make_token(user_id: int | str, token_type: str, expires: datetime) -> str:
    payload: dict[str, Any] = {
        "iss": settings.JWT_ISSUER,
        "sub": str(user_id),
        "type": token_type,
        "jti": new_jti(),
        "exp": expires,
        "iat": _now(),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGO)


def make_access_token(user_id: int | str) -> str:
    exp = _now() + timedelta(minutes=settings.ACCESS_TTL_MIN)
    return _make_token(user_id, "access", exp)


def make_refresh_token(user_id: int | str) -> str:
    return _make_token(user_id, "refresh", refresh_expiry())


def make_token_pair(user_id: int | str) -> TokenPair:
    return TokenPair(
        access_token=make_access_token(user_id),
        refresh_token=make_refresh_token(user_id),
    )


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(
        token, settings.JWT_SECRET, algorithms=[ALGO], issuer=settings.JWT_ISSUER
    )


def user_id_from_claims(claims: dict[str, Any]) -> int | None:
    raw = claims.get("sub")
    if raw is None:
        for name in LEGACY_ID_CLAIMS:
            if claims.get(name) is not None:
                raw = claims[name]
                break
    try:
        user_id = int(raw)
    except (TypeError, ValueError):
        return None
    return user_id if user_id > 0 else None
