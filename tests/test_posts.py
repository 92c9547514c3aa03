from readthis.core.config import settings
from readthis.models.comment import Comment
from readthis.models.post import Post, post_likes

BUCKET_BASE = "https://readthis-test.s3.eu-west-1.amazonaws.com/"


def _create(client, headers, title="Dune", content="Sand and spice.", files=None):
    return client.post(
        "/posts", headers=headers, data={"title": title, "content": content}, files=files
    )


def _seed_post(db, owner_id, title="Dune", image_url=""):
    post = Post(title=title, content="...", owner_id=owner_id, image_url=image_url)
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


class TestCreatePost:
    def test_without_image_falls_back_to_default_cover(self, client, make_user, auth_headers):
        user = make_user()
        r = _create(client, auth_headers(user.id))

        assert r.status_code == 201
        body = r.json()
        assert body["message"] == "Post created successfully."
        assert body["post"]["imageUrl"] == BUCKET_BASE + settings.DEFAULT_COVER_KEY
        assert body["post"]["ownerId"] == user.id
        assert body["post"]["owner"]["username"] == "reader"

    def test_uploaded_image_is_stored_under_post_id(
        self, client, storage, make_user, auth_headers, png_bytes
    ):
        user = make_user()
        r = _create(
            client,
            auth_headers(user.id),
            files={"image": ("cover.png", png_bytes, "image/png")},
        )

        post = r.json()["post"]
        assert r.status_code == 201
        assert post["imageUrl"] == f"{BUCKET_BASE}posts/{post['id']}.png"
        assert storage.objects[f"posts/{post['id']}.png"][0] == png_bytes

    def test_title_and_content_required(self, client, db, make_user, auth_headers):
        user = make_user()
        r = client.post("/posts", headers=auth_headers(user.id), data={"title": "Dune"})
        assert r.status_code == 400
        assert db.query(Post).count() == 0

    def test_rejected_image_creates_nothing(self, client, db, make_user, auth_headers):
        user = make_user()
        r = _create(
            client,
            auth_headers(user.id),
            files={"image": ("cover.gif", b"GIF89a", "image/gif")},
        )
        assert r.status_code == 400
        assert db.query(Post).count() == 0

    def test_requires_token(self, client):
        assert _create(client, {}).status_code == 401


class TestReadPosts:
    def test_paging(self, client, db, make_user):
        user = make_user()
        for i in range(12):
            _seed_post(db, user.id, title=f"Book {i}")

        first = client.get("/posts/paged", params={"page": 1, "limit": 5}).json()
        last = client.get("/posts/paged", params={"page": 3, "limit": 5}).json()

        assert first["totalPages"] == 3
        assert len(first["posts"]) == 5
        assert len(last["posts"]) == 2
        # newest first, ties on created_at broken by id
        assert [p["title"] for p in first["posts"]] == [f"Book {i}" for i in range(11, 6, -1)]

    def test_paging_defaults(self, client, db, make_user):
        user = make_user()
        for i in range(7):
            _seed_post(db, user.id, title=f"Book {i}")
        body = client.get("/posts/paged").json()
        assert len(body["posts"]) == 5
        assert body["totalPages"] == 2

    def test_empty_feed(self, client):
        assert client.get("/posts/paged").json() == {"posts": [], "totalPages": 0}

    def test_bad_page(self, client):
        assert client.get("/posts/paged", params={"page": 0}).status_code == 400

    def test_image_urls_are_absolute(self, client, db, make_user):
        user = make_user()
        _seed_post(db, user.id, image_url="posts/1.png")
        _seed_post(db, user.id, image_url="https://covers.example.com/a.jpg")
        _seed_post(db, user.id, image_url="")

        urls = {p["imageUrl"] for p in client.get("/posts").json()}
        assert urls == {
            f"{BUCKET_BASE}posts/1.png",
            "https://covers.example.com/a.jpg",
            BUCKET_BASE + settings.DEFAULT_COVER_KEY,
        }

    def test_read_one(self, client, db, make_user):
        user = make_user()
        post = _seed_post(db, user.id)
        db.add(Comment(text="Loved it", owner_id=user.id, post_id=post.id))
        db.commit()

        body = client.get(f"/posts/{post.id}").json()
        assert body["title"] == "Dune"
        assert body["comments"][0]["text"] == "Loved it"
        assert body["comments"][0]["owner"]["imageUrl"] == f"{BUCKET_BASE}profile/reader.png"

    def test_read_missing(self, client):
        assert client.get("/posts/404").status_code == 404

    def test_my_posts(self, client, db, make_user, auth_headers):
        me = make_user("me")
        other = make_user("other")
        _seed_post(db, me.id, title="Mine")
        _seed_post(db, other.id, title="Theirs")

        r = client.get("/posts/my-posts", headers=auth_headers(me.id))
        assert [p["title"] for p in r.json()] == ["Mine"]


class TestUpdateDelete:
    def test_owner_updates(self, client, db, storage, make_user, auth_headers, png_bytes):
        user = make_user()
        post = _seed_post(db, user.id)

        r = client.put(
            f"/posts/{post.id}",
            headers=auth_headers(user.id),
            data={"title": "Dune Messiah"},
            files={"image": ("new.png", png_bytes, "image/png")},
        )

        assert r.status_code == 200
        assert r.json()["title"] == "Dune Messiah"
        assert r.json()["content"] == "..."
        keys = [k for k in storage.objects if k.startswith(f"posts/{post.id}-")]
        assert len(keys) == 1
        assert r.json()["imageUrl"] == BUCKET_BASE + keys[0]

    def test_non_owner_cannot_update(self, client, db, make_user, auth_headers):
        owner = make_user("owner")
        intruder = make_user("intruder")
        post = _seed_post(db, owner.id)

        r = client.put(
            f"/posts/{post.id}", headers=auth_headers(intruder.id), data={"title": "x"}
        )
        assert r.status_code == 404

    def test_delete_takes_comments_and_likes_along(
        self, client, db, make_user, auth_headers
    ):
        user = make_user()
        post = _seed_post(db, user.id)
        headers = auth_headers(user.id)
        client.post(f"/posts/like/{post.id}", headers=headers)
        client.post(f"/posts/comment/{post.id}", headers=headers, json={"text": "hm"})

        r = client.delete(f"/posts/{post.id}", headers=headers)

        assert r.status_code == 200
        assert db.query(Post).count() == 0
        assert db.query(Comment).count() == 0
        assert db.query(post_likes).count() == 0

    def test_non_owner_cannot_delete(self, client, db, make_user, auth_headers):
        owner = make_user("owner")
        intruder = make_user("intruder")
        post = _seed_post(db, owner.id)

        r = client.delete(f"/posts/{post.id}", headers=auth_headers(intruder.id))
        assert r.status_code == 404
        assert db.query(Post).count() == 1


class TestLikes:
    def test_like_then_unlike(self, client, db, make_user, auth_headers):
        user = make_user()
        post = _seed_post(db, user.id)
        headers = auth_headers(user.id)

        r = client.post(f"/posts/like/{post.id}", headers=headers)
        assert r.status_code == 200
        assert client.get(f"/posts/{post.id}").json()["usersWhoLiked"] == [user.id]

        r = client.post(f"/posts/unlike/{post.id}", headers=headers)
        assert r.status_code == 200
        assert client.get(f"/posts/{post.id}").json()["usersWhoLiked"] == []

    def test_double_like_is_rejected_without_duplicate(
        self, client, db, make_user, auth_headers
    ):
        user = make_user()
        post = _seed_post(db, user.id)
        headers = auth_headers(user.id)

        client.post(f"/posts/like/{post.id}", headers=headers)
        r = client.post(f"/posts/like/{post.id}", headers=headers)

        assert r.status_code == 406
        assert r.json()["detail"] == "User already liked this post"
        assert db.query(post_likes).count() == 1

    def test_unlike_without_like(self, client, db, make_user, auth_headers):
        user = make_user()
        post = _seed_post(db, user.id)
        r = client.post(f"/posts/unlike/{post.id}", headers=auth_headers(user.id))
        assert r.status_code == 406

    def test_like_missing_post(self, client, make_user, auth_headers):
        user = make_user()
        r = client.post("/posts/like/999", headers=auth_headers(user.id))
        assert r.status_code == 404


class TestPostComments:
    def test_add_comment(self, client, db, make_user, auth_headers):
        user = make_user()
        post = _seed_post(db, user.id)

        r = client.post(
            f"/posts/comment/{post.id}",
            headers=auth_headers(user.id),
            json={"text": "Great read"},
        )

        assert r.status_code == 201
        body = r.json()
        assert body["text"] == "Great read"
        assert body["postId"] == post.id
        assert body["ownerId"] == user.id

    def test_text_required(self, client, db, make_user, auth_headers):
        user = make_user()
        post = _seed_post(db, user.id)
        r = client.post(
            f"/posts/comment/{post.id}", headers=auth_headers(user.id), json={"text": " "}
        )
        assert r.status_code == 400

    def test_missing_post(self, client, make_user, auth_headers):
        user = make_user()
        r = client.post(
            "/posts/comment/999", headers=auth_headers(user.id), json={"text": "hi"}
        )
        assert r.status_code == 404
