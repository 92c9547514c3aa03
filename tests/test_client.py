import httpx
import pytest

from readthis.client import ReadThisClient, TokenStore
from readthis.models.post import Post, post_likes


@pytest.fixture
def api(client):
    return ReadThisClient(client)


@pytest.fixture
def post(db, make_user):
    owner = make_user("author")
    p = Post(title="Dune", content="...", owner_id=owner.id, image_url="")
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


def test_login_fills_store(api, make_user):
    user = make_user()
    api.login("reader", "secret123")

    assert api.store.authenticated
    assert api.store.user_id == user.id
    assert api.me()["username"] == "reader"


def test_like_retries_once_after_refresh(api, db, make_user, post):
    make_user()
    api.login("reader", "secret123")
    old_refresh = api.store.refresh_token
    api.store.access_token = "expired-or-garbage"

    assert api.like_post(post.id) == {"message": "Post liked"}
    assert api.store.refresh_token != old_refresh
    assert db.query(post_likes).count() == 1


def test_rejected_refresh_signs_out(api, make_user, post):
    make_user()
    api.login("reader", "secret123")
    api.store.access_token = "garbage"
    api.store.refresh_token = "also-garbage"

    with pytest.raises(httpx.HTTPStatusError):
        api.like_post(post.id)
    assert api.store == TokenStore()


def test_refresh_without_token(api):
    with pytest.raises(RuntimeError):
        api.refresh()


def test_logout_clears_store_and_revokes(api, client, make_user):
    make_user()
    api.login("reader", "secret123")
    token = api.store.refresh_token

    api.logout()

    assert not api.store.authenticated
    r = client.post("/auth/refresh", json={"refreshToken": token})
    assert r.status_code == 401


def test_feed_and_comment(api, make_user, post):
    make_user()
    api.login("reader", "secret123")

    comment = api.add_comment(post.id, "Spice must flow")
    feed = api.feed(page=1, limit=5)

    assert comment["text"] == "Spice must flow"
    assert feed["totalPages"] == 1
    assert feed["posts"][0]["comments"][0]["text"] == "Spice must flow"

    with pytest.raises(httpx.HTTPStatusError) as exc:
        api.unlike_post(post.id)
    assert exc.value.response.status_code == 406


def test_expired_access_without_refresh_token_raises_status_error(api, post):
    api.store.access_token = "garbage"

    with pytest.raises(httpx.HTTPStatusError) as exc:
        api.like_post(post.id)
    assert exc.value.response.status_code == 401
    assert api.store == TokenStore()
