"""
Session-aware client for the ReadThis API.

Keeps the token pair the way the web frontend does: login or Google sign-in
fills the store, refresh replaces both tokens, and logout or a rejected
refresh clears it. Liking a post retries once after refreshing when the
access token has expired.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger("readthis.client")


@dataclass
class TokenStore:
    access_token: str | None = None
    refresh_token: str | None = None
    user_id: int | None = None

    @property
    def authenticated(self) -> bool:
        return bool(self.access_token)

    def save(self, body: dict[str, Any]) -> None:
        self.access_token = body["accessToken"]
        self.refresh_token = body["refreshToken"]
        self.user_id = body.get("id", self.user_id)

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.user_id = None


class ReadThisClient:
    def __init__(self, http: httpx.Client, store: TokenStore | None = None):
        self.http = http
        self.store = store or TokenStore()

    def _headers(self) -> dict[str, str]:
        if not self.store.access_token:
            return {}
        return {"Authorization": f"Bearer {self.store.access_token}"}

    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        return self.http.request(method, url, headers=self._headers(), **kwargs)

    def _json(self, resp: httpx.Response) -> Any:
        resp.raise_for_status()
        return resp.json()

    # session

    def login(self, username: str, password: str) -> dict[str, Any]:
        body = self._json(
            self.http.post(
                "/auth/login", json={"username": username, "password": password}
            )
        )
        self.store.save(body)
        return body

    def google_login(self, credential: str) -> dict[str, Any]:
        body = self._json(
            self.http.post("/auth/google-auth", json={"credential": credential})
        )
        self.store.save(body)
        return body

    def refresh(self) -> dict[str, Any]:
        """Rotate the token pair. A rejected refresh signs the client out."""
        if not self.store.refresh_token:
            self.store.clear()
            raise RuntimeError("no refresh token; log in again")

        resp = self.http.post(
            "/auth/refresh", json={"refreshToken": self.store.refresh_token}
        )
        if resp.status_code in (400, 401):
            logger.info("refresh rejected status=%s", resp.status_code)
            self.store.clear()
        body = self._json(resp)
        self.store.save(body)
        return body

    def logout(self) -> None:
        token = self.store.refresh_token
        self.store.clear()
        if token:
            self._json(self.http.post("/auth/logout", json={"refreshToken": token}))

    def me(self) -> dict[str, Any]:
        return self._json(self._send("GET", "/auth/me"))

    # posts

    def feed(self, page: int = 1, limit: int = 5) -> dict[str, Any]:
        return self._json(
            self._send("GET", "/posts/paged", params={"page": page, "limit": limit})
        )

    def like_post(self, post_id: int) -> dict[str, Any]:
        resp = self._send("POST", f"/posts/like/{post_id}")
        if resp.status_code == 401:
            if not self.store.refresh_token:
                self.store.clear()
                resp.raise_for_status()
            logger.info("access token rejected, refreshing")
            self.refresh()
            resp = self._send("POST", f"/posts/like/{post_id}")
        return self._json(resp)

    def unlike_post(self, post_id: int) -> dict[str, Any]:
        return self._json(self._send("POST", f"/posts/unlike/{post_id}"))

    def add_comment(self, post_id: int, text: str) -> dict[str, Any]:
        return self._json(
            self._send("POST", f"/posts/comment/{post_id}", json={"text": text})
        )

    def recommend(self, book_title: str) -> list[str]:
        body = self._json(
            self.http.post("/books/recommend", json={"bookTitle": book_title})
        )
        return body["recommendations"]
