import logging
import time

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from readthis.core.deps import AuthUser, get_current_user
from readthis.core.images import ImageRejected, validate_upload
from readthis.core.permissions import require_post_owned
from readthis.db.session import get_db
from readthis.models.comment import Comment
from readthis.models.post import Post
from readthis.models.user import User
from readthis.schemas.common import MessageOut
from readthis.schemas.post import (
    CommentIn,
    CommentOut,
    PagedPostsOut,
    PostCreatedOut,
    PostOut,
)
from readthis.services.covers import CoverService, get_cover_service
from readthis.services.feed import (
    DEFAULT_PAGE_SIZE,
    all_posts,
    comment_out,
    get_post,
    paged_posts,
    post_out,
)

logger = logging.getLogger("readthis.routers.posts")

router = APIRouter(prefix="/posts", tags=["posts"])


def _read_image(image: UploadFile | None) -> bytes | None:
    if image is None or not image.filename:
        return None
    data = image.file.read()
    try:
        validate_upload(data, image.filename, image.content_type)
    except ImageRejected as e:
        raise HTTPException(status_code=400, detail=str(e))
    return data


def _require_post(db: Session, post_id: int) -> Post:
    post = get_post(db, post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def _require_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=list[PostOut])
def list_posts(db: Session = Depends(get_db)):
    return [post_out(p) for p in all_posts(db)]


@router.get("/paged", response_model=PagedPostsOut)
def list_posts_paged(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
):
    posts, total_pages = paged_posts(db, page, limit)
    return PagedPostsOut(posts=[post_out(p) for p in posts], total_pages=total_pages)


@router.get("/my-posts", response_model=list[PostOut])
def my_posts(
    current: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)
):
    return [post_out(p) for p in all_posts(db, owner_id=current.id)]


@router.get("/{post_id}", response_model=PostOut)
def read_post(post_id: int, db: Session = Depends(get_db)):
    return post_out(_require_post(db, post_id))


@router.post("", response_model=PostCreatedOut, status_code=201)
def create_post(
    current: AuthUser = Depends(get_current_user),
    title: str | None = Form(None),
    content: str | None = Form(None),
    image: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    covers: CoverService = Depends(get_cover_service),
):
    if not title or not title.strip() or not content or not content.strip():
        raise HTTPException(status_code=400, detail="Title and content are required.")
    data = _read_image(image)
    _require_user(db, current.id)

    post = Post(title=title.strip(), content=content, owner_id=current.id, image_url="")
    db.add(post)
    db.flush()  # id is part of the image key

    # row and image URL are committed together, so a post is never left bare
    if data is not None:
        post.image_url = covers.store_upload(
            data, image.content_type or "image/png", f"posts/{post.id}.png"
        )
    else:
        post.image_url = covers.cover_for(post.title, post.id)

    db.commit()
    logger.info("post created post_id=%s owner_id=%s", post.id, current.id)
    return PostCreatedOut(
        message="Post created successfully.", post=post_out(_require_post(db, post.id))
    )


@router.put("/{post_id}", response_model=PostOut)
def update_post(
    post_id: int,
    current: AuthUser = Depends(get_current_user),
    title: str | None = Form(None),
    content: str | None = Form(None),
    image: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    covers: CoverService = Depends(get_cover_service),
):
    post = require_post_owned(db, current.id, post_id)
    data = _read_image(image)

    if title is not None and title.strip():
        post.title = title.strip()
    if content is not None and content.strip():
        post.content = content
    if data is not None:
        key = f"posts/{post_id}-{int(time.time() * 1000)}.png"
        post.image_url = covers.store_upload(data, image.content_type or "image/png", key)

    db.commit()
    return post_out(_require_post(db, post_id))


@router.delete("/{post_id}", response_model=MessageOut)
def delete_post(
    post_id: int,
    current: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post = require_post_owned(db, current.id, post_id)
    db.delete(post)
    db.commit()
    logger.info("post deleted post_id=%s", post_id)
    return MessageOut(message="Post deleted successfully.")


@router.post("/like/{post_id}", response_model=MessageOut)
def like_post(
    post_id: int,
    current: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post = _require_post(db, post_id)
    if any(u.id == current.id for u in post.liked_by):
        raise HTTPException(
            status_code=status.HTTP_406_NOT_ACCEPTABLE,
            detail="User already liked this post",
        )

    post.liked_by.append(_require_user(db, current.id))
    try:
        db.commit()
    except IntegrityError:
        # a concurrent like landed first
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_406_NOT_ACCEPTABLE,
            detail="User already liked this post",
        )
    return MessageOut(message="Post liked")


@router.post("/unlike/{post_id}", response_model=MessageOut)
def unlike_post(
    post_id: int,
    current: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post = _require_post(db, post_id)
    liker = next((u for u in post.liked_by if u.id == current.id), None)
    if liker is None:
        raise HTTPException(
            status_code=status.HTTP_406_NOT_ACCEPTABLE,
            detail="User has not liked this post",
        )

    post.liked_by.remove(liker)
    db.commit()
    return MessageOut(message="Post unliked")


@router.post("/comment/{post_id}", response_model=CommentOut, status_code=201)
def add_comment(
    post_id: int,
    payload: CommentIn,
    current: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not payload.text or not payload.text.strip():
        raise HTTPException(status_code=400, detail="Missing required fields.")
    _require_post(db, post_id)
    _require_user(db, current.id)

    comment = Comment(text=payload.text, owner_id=current.id, post_id=post_id)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment_out(comment)
