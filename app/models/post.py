import enum
from sqlalchemy import Column, Integer, String, Text, Enum, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class PostStatus(str, enum.Enum):
    DRAFT     = "draft"
    PUBLISHED = "published"
    ARCHIVED  = "archived"


class Post(Base):
    """
    A blog post with optional PDF / ZIP attachments.
    `pdf` and `zip` hold paths relative to settings.UPLOAD_DIR.
    """
    __tablename__ = "posts"

    id          = Column(Integer, primary_key=True, index=True)
    title       = Column(String(200), nullable=False)
    slug        = Column(String(255), unique=True, nullable=False, index=True)
    content     = Column(Text, nullable=False)
    blogImage   = Column(String(500), nullable=True)
    pdf         = Column(String(500), nullable=True)
    zip         = Column(String(500), nullable=True)
    status      = Column(Enum(PostStatus, values_callable=lambda e: [s.value for s in e]),
                         default=PostStatus.DRAFT, nullable=False)
    publishedAt = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=True)
    createdAt   = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updatedAt   = Column(TIMESTAMP(timezone=True), server_default=func.now(),
                         onupdate=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    downloads = relationship("Download", back_populates="post")

    def attachment(self, kind: str) -> str | None:
        """Stored path of the attachment of the given kind ("pdf" | "zip")."""
        return self.zip if kind == "zip" else self.pdf

    def __repr__(self):
        return f"<Post id={self.id} slug={self.slug} status={self.status}>"
