from readthis.schemas.common import CamelModel


class RecommendIn(CamelModel):
    book_title: str | None = None


class RecommendOut(CamelModel):
    recommendations: list[str]
