from fastapi import HTTPException
from sqlalchemy.orm import Session

from readthis.models.comment import Comment
from readthis.models.post import Post


def require_post_owned(db: Session, user_id: int, post_id: int) -> Post:
    post = (
        db.query(Post)
        .filter(Post.id == post_id, Post.owner_id == user_id)
        .first()
    )
    if not post:
        raise HTTPException(status_code=404, detail="Post not found or unauthorized")
    return post


def require_comment_owned(db: Session, user_id: int, comment_id: int) -> Comment:
    comment = (
        db.query(Comment)
        .filter(Comment.id == comment_id, Comment.owner_id == user_id)
        .first()
    )
    if not comment:
        raise HTTPException(
            status_code=404, detail="Comment not found or unauthorized"
        )
    return comment
