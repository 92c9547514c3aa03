from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from readthis.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    username: Mapped[str] = mapped_column(String(120), unique=True, index=True)

    # bcrypt hash, or OAUTH_PASSWORD_SENTINEL for Google-only accounts
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    image_url: Mapped[str] = mapped_column(String(1024), nullable=False, default="")

    google_id: Mapped[str | None] = mapped_column(
        String(255), unique=True, index=True, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # session control (refresh rotation), one row per signed-in device
    refresh_tokens: Mapped[list["RefreshToken"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    posts: Mapped[list["Post"]] = relationship(
        back_populates="owner", cascade="all, delete-orphan", passive_deletes=True
    )
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="owner", cascade="all, delete-orphan", passive_deletes=True
    )


class RefreshToken(Base):
    """
    An active refresh token. A token is valid only while its row exists:
    logout deletes it, refresh replaces it with a new one.
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )

    token: Mapped[str] = mapped_column(String(1024), unique=True, index=True)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="refresh_tokens")
