"""
Post image ingestion.

A post gets, in order of preference: the image the author uploaded, a cover
found on Google Books, a cover found on Open Library, or the static
placeholder. Lookup and download failures only move on to the next source.
"""

import logging
from functools import lru_cache
from typing import Callable

import httpx

from readthis.core.config import settings
from readthis.core.images import ImageRejected, fit_cover
from readthis.core.storage import ObjectStorage, default_cover_url, get_storage

logger = logging.getLogger("readthis.covers")


def _dict(value) -> dict:
    # catalog payloads are untrusted; anything but an object counts as empty
    return value if isinstance(value, dict) else {}


class CoverService:
    def __init__(self, storage: ObjectStorage, client: httpx.Client | None = None):
        self.storage = storage
        self.client = client or httpx.Client(
            timeout=settings.HTTP_TIMEOUT_SEC, follow_redirects=True
        )

    def store_upload(self, data: bytes, content_type: str, key: str) -> str:
        return self.storage.put(key, data, content_type)

    def lookup_google_books(self, title: str) -> str | None:
        resp = self.client.get(settings.GOOGLE_BOOKS_URL, params={"q": title})
        resp.raise_for_status()
        items = _dict(resp.json()).get("items")
        if not isinstance(items, list) or not items:
            return None
        links = _dict(_dict(_dict(items[0]).get("volumeInfo")).get("imageLinks"))
        url = links.get("thumbnail") or links.get("smallThumbnail")
        return url if isinstance(url, str) else None

    def lookup_open_library(self, title: str) -> str | None:
        resp = self.client.get(settings.OPEN_LIBRARY_URL, params={"title": title})
        resp.raise_for_status()
        docs = _dict(resp.json()).get("docs")
        if not isinstance(docs, list) or not docs:
            return None
        cover_id = _dict(docs[0]).get("cover_i")
        if not isinstance(cover_id, int) or isinstance(cover_id, bool):
            return None
        return f"{settings.OPEN_LIBRARY_COVERS_URL}/{cover_id}-L.jpg"

    def store_cover(self, image_url: str, post_id: int) -> str:
        if not image_url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid image URL: {image_url}")
        resp = self.client.get(image_url)
        resp.raise_for_status()
        body = fit_cover(resp.content)
        return self.storage.put(f"posts/{post_id}.jpg", body, "image/jpeg")

    def cover_for(self, title: str, post_id: int) -> str:
        lookups: list[tuple[str, Callable[[str], str | None]]] = [
            ("google_books", self.lookup_google_books),
            ("open_library", self.lookup_open_library),
        ]
        for source, lookup in lookups:
            try:
                image_url = lookup(title)
            except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("cover lookup failed source=%s err=%s", source, e)
                continue
            if not image_url:
                logger.info("no cover found source=%s post_id=%s", source, post_id)
                continue
            try:
                return self.store_cover(image_url, post_id)
            except (httpx.HTTPError, ImageRejected, ValueError) as e:
                logger.warning("cover store failed source=%s err=%s", source, e)
            except Exception:
                # storage errors included; a post must still get an image
                logger.exception("cover pipeline error source=%s", source)

        logger.info("using default cover post_id=%s", post_id)
        return default_cover_url()


@lru_cache(maxsize=1)
def get_cover_service() -> CoverService:
    return CoverService(get_storage())
