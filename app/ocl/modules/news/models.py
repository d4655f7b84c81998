from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.ocl.models import Base
from app.ocl.utils import isoformat

TITLE_MAX_LENGTH = 200
EXCERPT_MAX_LENGTH = 500
LABEL_MAX_LENGTH = 128  # category, author
DEFAULT_CATEGORY = "General"
DEFAULT_AUTHOR = "OCL Team"


class NewsPost(Base):
    __tablename__ = "news_posts"
    __table_args__ = (
        Index("idx_news_published", "published", "published_at"),
        Index("idx_news_category", "category"),
        Index("idx_news_featured", "featured"),
        Index("idx_news_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    # NULL allowed (sparse), unique otherwise
    slug: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    excerpt: Mapped[str] = mapped_column(String(EXCERPT_MAX_LENGTH), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(LABEL_MAX_LENGTH), nullable=False, default=DEFAULT_CATEGORY)

    author: Mapped[str] = mapped_column(String(LABEL_MAX_LENGTH), nullable=False, default=DEFAULT_AUTHOR)
    author_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    image: Mapped[str] = mapped_column(String(512), nullable=False, default="")  # public URL
    image_key: Mapped[str] = mapped_column(String(255), nullable=False, default="")  # stored filename

    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    @property
    def state(self) -> str:
        return "published" if self.published else "draft"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "excerpt": self.excerpt,
            "content": self.content,
            "category": self.category,
            "author": self.author,
            "authorId": self.author_id,
            "image": self.image,
            "imageKey": self.image_key,
            "published": self.published,
            "publishedAt": isoformat(self.published_at),
            "views": self.views,
            "featured": self.featured,
            "tags": list(self.tags or []),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
