"""
Shared fixtures.

The app runs against an in-memory SQLite database (one shared connection).
S3, the cover catalogs and the recommendation API are replaced through
dependency overrides, so no test touches the network.
"""

import os

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["AWS_REGION"] = "eu-west-1"
os.environ["S3_BUCKET_NAME"] = "readthis-test"
os.environ["GOOGLE_CLIENT_ID"] = "test-client.apps.googleusercontent.com"
os.environ.pop("S3_PUBLIC_BASE_URL", None)
os.environ.pop("OPENAI_API_KEY", None)

import cv2
import httpx
import numpy as np
import pytest
from fastapi.testclient import TestClient

from readthis.core.security import hash_password, make_token_pair
from readthis.core.storage import get_storage, public_url
from readthis.db.base import Base
from readthis.db.session import SessionLocal, create_tables, engine
from readthis.main import app
from readthis.models.user import User
from readthis.services.covers import CoverService, get_cover_service


class FakeStorage:
    """Records puts instead of talking to S3."""

    def __init__(self):
        self.objects: dict[str, tuple[bytes, str]] = {}

    def put(self, key: str, body: bytes, content_type: str) -> str:
        self.objects[key] = (body, content_type)
        return public_url(key)


def catalog_miss(request: httpx.Request) -> httpx.Response:
    # both catalogs find nothing
    if "openlibrary" in request.url.host:
        return httpx.Response(200, json={"docs": []})
    return httpx.Response(200, json={"items": []})


def make_image(width: int = 40, height: int = 60, ext: str = ".png") -> bytes:
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :, 1] = 180
    ok, buf = cv2.imencode(ext, img)
    assert ok
    return buf.tobytes()


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    create_tables()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def covers(storage):
    return CoverService(storage, client=httpx.Client(transport=httpx.MockTransport(catalog_miss)))


@pytest.fixture
def client(storage, covers):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_cover_service] = lambda: covers
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def png_bytes():
    return make_image()


@pytest.fixture
def make_user(db):
    def _make(username="reader", email=None, password="secret123"):
        user = User(
            email=email or f"{username}@example.com",
            username=username,
            password_hash=hash_password(password),
            image_url=f"profile/{username}.png",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user_id: int) -> dict[str, str]:
        pair = make_token_pair(user_id)
        return {"Authorization": f"Bearer {pair.access_token}"}

    return _headers
