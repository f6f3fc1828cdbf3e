"""SQLAlchemy ORM models for the library store."""

from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import (
    BigInteger,
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models (one shared metadata registry)."""

    pass


# Hey future me - a novel row exists as soon as the user OPENS a novel, in_library only
# flips when they add it. Sync only ever looks at in_library=1 AND is_local=0 rows.
# latest_chapter_at is epoch MILLIS and only ever moves up (see bump_latest_chapter_at).
class NovelModel(Base):
    """A tracked work from one content source."""

    __tablename__ = "novels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plugin_id: Mapped[str] = mapped_column(String(100), nullable=False)
    path: Mapped[str] = mapped_column(String(1000), nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    cover: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    author: Mapped[str | None] = mapped_column(String(500), nullable=True)
    artist: Mapped[str | None] = mapped_column(String(500), nullable=True)
    genres: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    total_pages: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    word_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    in_library: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_local: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    latest_chapter_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )

    chapters: Mapped[list["ChapterModel"]] = relationship(
        back_populates="novel", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("path", "plugin_id", name="uq_novels_path_plugin"),
        Index("ix_novels_library", "in_library", "is_local"),
    )


# Chapter identity is (path, novel_id): the upsert relies on this constraint.
class ChapterModel(Base):
    """One chapter of a novel."""

    __tablename__ = "chapters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    novel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("novels.id", ondelete="CASCADE"), nullable=False
    )
    path: Mapped[str] = mapped_column(String(1000), nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    release_time: Mapped[str | None] = mapped_column(String(100), nullable=True)
    chapter_number: Mapped[float | None] = mapped_column(Float, nullable=True)
    page: Mapped[str] = mapped_column(String(50), nullable=False, default="1")
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_downloaded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_time: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )

    novel: Mapped[NovelModel] = relationship(back_populates="chapters")

    __table_args__ = (
        UniqueConstraint("path", "novel_id", name="uq_chapters_path_novel"),
        Index("ix_chapters_novel_page_position", "novel_id", "page", "position"),
    )


class CategoryModel(Base):
    """User-defined library category."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    sort: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class NovelCategoryModel(Base):
    """Many-to-many link between novels and categories."""

    __tablename__ = "novel_categories"

    novel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("novels.id", ondelete="CASCADE"), primary_key=True
    )
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True
    )

    __table_args__ = (Index("ix_novel_categories_category", "category_id"),)


# Hey future me - this is the persisted key-value store the task queue snapshot lives in
# (key APP_SERVICE_TASK_QUEUE), next to small bits like LAST_UPDATE_TIME. Values are
# opaque text, callers serialize.
class KeyValueModel(Base):
    """Persisted string key-value pair."""

    __tablename__ = "key_values"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        default=utc_now,
        onupdate=utc_now,
    )
