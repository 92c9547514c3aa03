import logging
from functools import lru_cache

import httpx

from readthis.core.config import settings

logger = logging.getLogger("readthis.recommendations")

NO_RECOMMENDATIONS = ["No recommendations found."]

SYSTEM_PROMPT = "You are a helpful AI assistant that recommends books."


def _user_prompt(book_title: str) -> str:
    return (
        f"Can you find for me 5-10 books in the same genre as {book_title}? "
        "Provide book name, author, and a short description for each."
    )


class BookRecommender:
    def __init__(
        self,
        api_url: str,
        api_key: str | None,
        model: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.transport = transport

    async def recommend(self, book_title: str) -> list[str]:
        if not self.api_key:
            logger.error("recommendation API key is missing")
            return list(NO_RECOMMENDATIONS)

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": _user_prompt(book_title)},
            ],
            "max_tokens": 300,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                resp = await client.post(self.api_url, json=body, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("recommendation request failed err=%s", e)
            return list(NO_RECOMMENDATIONS)

        choices = data.get("choices") or []
        text = ""
        if choices:
            text = ((choices[0].get("message") or {}).get("content") or "").strip()
        if not text:
            return list(NO_RECOMMENDATIONS)

        return [line.strip() for line in text.split("\n") if line.strip()]


@lru_cache(maxsize=1)
def get_recommender() -> BookRecommender:
    return BookRecommender(
        api_url=settings.RECOMMENDATION_API_URL,
        api_key=settings.OPENAI_API_KEY,
        model=settings.RECOMMENDATION_MODEL,
        timeout=settings.HTTP_TIMEOUT_SEC,
    )
