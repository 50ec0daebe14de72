"""
Import all models here so that:
1. create_tables() registers every table on Base.metadata
2. Relationships between models resolve correctly

Order matters — import parent tables before child tables.
"""

from app.models.user import User, UserRole
from app.models.post import Post, PostStatus
from app.models.download import Download, DownloadKind
from app.models.audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Post",
    "PostStatus",
    "Download",
    "DownloadKind",
    "AuditLog",
]
