from datetime import datetime

from readthis.schemas.common import CamelModel


class OwnerOut(CamelModel):
    id: int
    username: str
    image_url: str | None = None


class CommentOut(CamelModel):
    id: int
    text: str
    owner_id: int
    post_id: int
    created_at: datetime | None = None
    owner: OwnerOut | None = None


class PostOut(CamelModel):
    id: int
    title: str
    content: str
    image_url: str
    owner_id: int
    created_at: datetime | None = None
    owner: OwnerOut | None = None
    users_who_liked: list[int] = []
    comments: list[CommentOut] = []


class PagedPostsOut(CamelModel):
    posts: list[PostOut]
    total_pages: int


class PostCreatedOut(CamelModel):
    message: str
    post: PostOut


class CommentIn(CamelModel):
    text: str | None = None


class CommentCreateIn(CommentIn):
    post_id: int | None = None
