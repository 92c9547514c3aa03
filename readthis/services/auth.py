import logging
import re
from datetime import datetime, timezone

from fastapi import HTTPException, status
from jose import JWTError
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from readthis.core.security import (
    TokenPair,
    decode_token,
    make_token_pair,
    refresh_expiry,
    user_id_from_claims,
)
from readthis.models.user import RefreshToken, User

logger = logging.getLogger("readthis.auth")

_email = TypeAdapter(EmailStr)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _invalid_refresh() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token"
    )


def is_valid_email(email: str) -> bool:
    try:
        _email.validate_python(email)
    except ValidationError:
        return False
    return True


def find_by_email_or_username(db: Session, email: str, username: str) -> User | None:
    return (
        db.query(User)
        .filter(or_(User.email == email, User.username == username))
        .first()
    )


def prune_expired(db: Session, user: User) -> int:
    now = _utcnow()
    stale = [t for t in user.refresh_tokens if _as_aware(t.expires_at) <= now]
    for t in stale:
        db.delete(t)
    return len(stale)


def issue_session(db: Session, user: User) -> TokenPair:
    """Mint a token pair and remember the refresh half for this user."""
    pair = make_token_pair(user.id)
    pruned = prune_expired(db, user)
    db.add(
        RefreshToken(
            user_id=user.id, token=pair.refresh_token, expires_at=refresh_expiry()
        )
    )
    db.commit()
    logger.info("session issued user_id=%s pruned=%d", user.id, pruned)
    return pair


def rotate_session(db: Session, refresh_token: str) -> tuple[User, TokenPair]:
    """
    Exchange a refresh token for a new pair. The presented token is removed
    even though it may still be cryptographically valid, so each refresh
    token works exactly once.
    """
    try:
        payload = decode_token(refresh_token)
    except JWTError:
        raise _invalid_refresh()

    if payload.get("type", "refresh") != "refresh":
        raise _invalid_refresh()

    user_id = user_id_from_claims(payload)
    if user_id is None:
        raise _invalid_refresh()

    user = db.get(User, user_id)
    if not user:
        raise _invalid_refresh()

    # single DELETE so two racing refreshes cannot both win
    removed = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id, RefreshToken.token == refresh_token)
        .delete(synchronize_session=False)
    )
    if not removed:
        # already rotated out, logged out, or never ours
        db.rollback()
        logger.warning("refresh token not on record user_id=%s", user_id)
        raise _invalid_refresh()

    db.expire(user, ["refresh_tokens"])
    return user, issue_session(db, user)


def end_session(db: Session, refresh_token: str) -> bool:
    removed = (
        db.query(RefreshToken)
        .filter(RefreshToken.token == refresh_token)
        .delete(synchronize_session=False)
    )
    db.commit()
    return bool(removed)


def username_from_profile(name: str | None, email: str) -> str:
    base = re.sub(r"\s+", "", name or "").lower()
    return base or email.split("@")[0]


def unique_username(db: Session, base: str) -> str:
    candidate = base
    n = 1
    while username_taken(db, candidate):
        n += 1
        candidate = f"{base}{n}"
    return candidate


def username_taken(db: Session, username: str, exclude_user_id: int | None = None) -> bool:
    q = db.query(User.id).filter(User.username == username)
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    return q.first() is not None
