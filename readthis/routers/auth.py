import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from google.auth import exceptions as google_exceptions
from google.oauth2 import id_token as google_id_token
from google.auth.transport import requests as google_requests

from readthis.core.config import settings
from readthis.core.deps import AuthUser, get_current_user
from readthis.core.images import ImageRejected, validate_upload
from readthis.core.security import (
    OAUTH_PASSWORD_SENTINEL,
    hash_password,
    verify_password,
)
from readthis.core.storage import ObjectStorage, get_storage, resolve_image_url
from readthis.db.session import get_db
from readthis.models.user import User
from readthis.schemas.auth import (
    GoogleAuthOut,
    GoogleIn,
    LoginIn,
    RefreshIn,
    TokenPairOut,
    UserOut,
)
from readthis.schemas.common import MessageOut
from readthis.services.auth import (
    end_session,
    find_by_email_or_username,
    is_valid_email,
    issue_session,
    rotate_session,
    unique_username,
    username_from_profile,
    username_taken,
)

logger = logging.getLogger("readthis.routers.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        username=user.username,
        image_url=resolve_image_url(user.image_url),
    )


def _already_exists() -> HTTPException:
    return HTTPException(
        status_code=400,
        detail="Username or Email already exists. Please try a different one.",
    )


def _username_taken() -> HTTPException:
    return HTTPException(status_code=400, detail="Username already taken.")


def _read_image(image: UploadFile) -> bytes:
    data = image.file.read()
    try:
        validate_upload(data, image.filename, image.content_type)
    except ImageRejected as e:
        raise HTTPException(status_code=400, detail=str(e))
    return data


def _store_avatar(storage: ObjectStorage, user: User, image: UploadFile, data: bytes):
    user.image_url = storage.put(
        f"profile/{user.id}.png", data, image.content_type or "image/png"
    )


@router.post("/register", response_model=UserOut)
def register(
    email: str | None = Form(None),
    username: str | None = Form(None),
    password: str | None = Form(None),
    image: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    email = (email or "").strip().lower()
    username = (username or "").strip()
    if not email or not username or not password:
        raise HTTPException(
            status_code=400,
            detail="All fields are required: email, username, password.",
        )

    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Invalid email format.")

    if image is None or not image.filename:
        raise HTTPException(status_code=400, detail="Profile image is required.")
    data = _read_image(image)

    if find_by_email_or_username(db, email, username):
        raise _already_exists()

    user = User(email=email, username=username, password_hash=hash_password(password))
    db.add(user)
    try:
        db.flush()  # need the id for the avatar key
    except IntegrityError:
        # a concurrent registration took the email or username
        db.rollback()
        raise _already_exists()

    _store_avatar(storage, user, image, data)
    db.commit()
    db.refresh(user)

    logger.info("registered user_id=%s", user.id)
    return _user_out(user)


@router.post("/login", response_model=TokenPairOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    if not payload.username or not payload.password:
        raise HTTPException(
            status_code=400, detail="Username and password are required."
        )

    user = db.query(User).filter(User.username == payload.username).first()
    if not user:
        raise HTTPException(status_code=400, detail="User not found")

    if not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Wrong username or password")

    pair = issue_session(db, user)
    return TokenPairOut(
        access_token=pair.access_token, refresh_token=pair.refresh_token, id=user.id
    )


@router.post("/refresh", response_model=TokenPairOut)
def refresh(payload: RefreshIn, db: Session = Depends(get_db)):
    if not payload.refresh_token:
        raise HTTPException(status_code=400, detail="Refresh token is required")

    user, pair = rotate_session(db, payload.refresh_token)
    return TokenPairOut(
        access_token=pair.access_token, refresh_token=pair.refresh_token, id=user.id
    )


@router.post("/logout", response_model=MessageOut)
def logout(payload: RefreshIn, db: Session = Depends(get_db)):
    if not payload.refresh_token:
        raise HTTPException(status_code=400, detail="Refresh token is required")

    end_session(db, payload.refresh_token)
    return MessageOut(message="Success")


@router.get("/me", response_model=UserOut)
def me(current: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    user = db.get(User, current.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _user_out(user)


@router.put("/profile", response_model=UserOut)
def update_profile(
    current: AuthUser = Depends(get_current_user),
    username: str | None = Form(None),
    image: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    user = db.get(User, current.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if username is not None:
        username = username.strip()
        if not username:
            raise HTTPException(status_code=400, detail="Username is required.")
        if username != user.username:
            if username_taken(db, username, exclude_user_id=user.id):
                raise _username_taken()
            user.username = username

    if image is not None and image.filename:
        data = _read_image(image)
        _store_avatar(storage, user, image, data)

    try:
        db.commit()
    except IntegrityError:
        # a concurrent rename took the username
        db.rollback()
        raise _username_taken()
    db.refresh(user)
    return _user_out(user)


@router.post("/google-auth", response_model=GoogleAuthOut)
def google_auth(payload: GoogleIn, db: Session = Depends(get_db)):
    if not payload.credential:
        raise HTTPException(status_code=400, detail="Google credential is required")

    try:
        idinfo = google_id_token.verify_oauth2_token(
            payload.credential,
            google_requests.Request(),
            settings.GOOGLE_CLIENT_ID,
        )
    except (ValueError, google_exceptions.GoogleAuthError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Google token"
        )

    email = (idinfo.get("email") or "").lower().strip()
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email missing from Google token",
        )

    user = db.query(User).filter(User.email == email).first()
    if not user:
        user = User(
            email=email,
            username=unique_username(
                db, username_from_profile(idinfo.get("name"), email)
            ),
            password_hash=OAUTH_PASSWORD_SENTINEL,
            image_url=idinfo.get("picture") or "",
            google_id=idinfo.get("sub"),
        )
        db.add(user)
        db.flush()
        logger.info("created user from google sign-in user_id=%s", user.id)
    elif not user.google_id and idinfo.get("sub"):
        # link by email
        user.google_id = idinfo.get("sub")

    pair = issue_session(db, user)
    return GoogleAuthOut(
        id=user.id,
        email=user.email,
        username=user.username,
        image_url=resolve_image_url(user.image_url),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
    )
