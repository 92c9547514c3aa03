from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from readthis.core.deps import AuthUser, get_current_user
from readthis.core.permissions import require_comment_owned
from readthis.db.session import get_db
from readthis.models.comment import Comment
from readthis.models.post import Post
from readthis.schemas.post import CommentCreateIn, CommentOut
from readthis.services.feed import comment_out

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("", response_model=list[CommentOut])
def list_comments(
    post_id: int | None = Query(None, alias="postId"),
    db: Session = Depends(get_db),
):
    q = db.query(Comment).options(selectinload(Comment.owner))
    if post_id is not None:
        q = q.filter(Comment.post_id == post_id)
    return [comment_out(c) for c in q.order_by(Comment.id).all()]


@router.get("/{comment_id}", response_model=CommentOut)
def read_comment(comment_id: int, db: Session = Depends(get_db)):
    comment = db.get(Comment, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment_out(comment)


@router.post("", response_model=CommentOut, status_code=201)
def create_comment(
    payload: CommentCreateIn,
    current: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not payload.text or not payload.text.strip() or payload.post_id is None:
        raise HTTPException(status_code=400, detail="Missing required fields.")
    if not db.get(Post, payload.post_id):
        raise HTTPException(status_code=404, detail="Post not found")

    comment = Comment(text=payload.text, owner_id=current.id, post_id=payload.post_id)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment_out(comment)


@router.delete("/{comment_id}", response_model=CommentOut)
def delete_comment(
    comment_id: int,
    current: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    comment = require_comment_owned(db, current.id, comment_id)
    deleted = comment_out(comment)
    db.delete(comment)
    db.commit()
    return deleted
