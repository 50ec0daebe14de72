import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, TIMESTAMP, Index
from sqlalchemy.orm import relationship
from app.database import Base


class DownloadKind(str, enum.Enum):
    PDF = "pdf"
    ZIP = "zip"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Download(Base):
    """Append-only ledger: one row per completed file transfer."""
    __tablename__ = "downloads"

    id           = Column(Integer, primary_key=True, index=True)
    userId       = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    postId       = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    fileType     = Column(Enum(DownloadKind, values_callable=lambda e: [k.value for k in e]), nullable=False)
    fileName     = Column(String(255), nullable=False)
    ipAddress    = Column(String(64), nullable=True)
    userAgent    = Column(String(500), nullable=True)
    downloadedAt = Column(TIMESTAMP(timezone=True), default=_utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("ix_downloads_user_downloaded_at", "userId", "downloadedAt"),
        Index("ix_downloads_post_file_type", "postId", "fileType"),
    )

    # ─── Relationships ─────────────────────────────────────────────────────────
    user = relationship("User", back_populates="downloads")
    post = relationship("Post", back_populates="downloads")

    def __repr__(self):
        return f"<Download id={self.id} userId={self.userId} postId={self.postId} type={self.fileType}>"
