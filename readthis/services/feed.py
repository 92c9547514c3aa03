import math

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from readthis.core.storage import resolve_image_url, resolve_post_image_url
from readthis.models.comment import Comment
from readthis.models.post import Post
from readthis.models.user import User
from readthis.schemas.post import CommentOut, OwnerOut, PostOut

DEFAULT_PAGE_SIZE = 5


def _owner_out(user: User | None) -> OwnerOut | None:
    if user is None:
        return None
    return OwnerOut(
        id=user.id, username=user.username, image_url=resolve_image_url(user.image_url)
    )


def comment_out(comment: Comment) -> CommentOut:
    return CommentOut(
        id=comment.id,
        text=comment.text,
        owner_id=comment.owner_id,
        post_id=comment.post_id,
        created_at=comment.created_at,
        owner=_owner_out(comment.owner),
    )


def post_out(post: Post) -> PostOut:
    """Every image URL in the result is absolute: post, owner, comment owners."""
    return PostOut(
        id=post.id,
        title=post.title,
        content=post.content,
        image_url=resolve_post_image_url(post.image_url),
        owner_id=post.owner_id,
        created_at=post.created_at,
        owner=_owner_out(post.owner),
        users_who_liked=[u.id for u in post.liked_by],
        comments=[comment_out(c) for c in post.comments],
    )


def _with_relations(query):
    return query.options(
        selectinload(Post.owner),
        selectinload(Post.liked_by),
        selectinload(Post.comments).selectinload(Comment.owner),
    )


def _newest_first(query):
    return query.order_by(Post.created_at.desc(), Post.id.desc())


def all_posts(db: Session, owner_id: int | None = None) -> list[Post]:
    q = _with_relations(db.query(Post))
    if owner_id is not None:
        q = q.filter(Post.owner_id == owner_id)
    return _newest_first(q).all()


def get_post(db: Session, post_id: int) -> Post | None:
    return _with_relations(db.query(Post)).filter(Post.id == post_id).first()


def paged_posts(db: Session, page: int, limit: int) -> tuple[list[Post], int]:
    """One page of the feed plus the total page count."""
    skip = (page - 1) * limit
    posts = _newest_first(_with_relations(db.query(Post))).offset(skip).limit(limit).all()
    total = db.query(func.count(Post.id)).scalar() or 0
    return posts, math.ceil(total / limit)
