import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.download import Download, DownloadKind
from app.utils.exceptions import TransientStorageException

logger = logging.getLogger(__name__)


def quota_window_start(now: datetime | None = None, policy: str | None = None) -> datetime:
    """
    Start of the current quota window, in UTC.

    calendar_day — most recent server-local midnight
    rolling_24h  — exactly 24 hours before `now`
    """
    now = now or datetime.now(timezone.utc)
    policy = policy or settings.DOWNLOAD_QUOTA_WINDOW
    if policy == "rolling_24h":
        return (now - timedelta(hours=24)).astimezone(timezone.utc)
    local_midnight = now.astimezone().replace(hour=0, minute=0, second=0, microsecond=0)
    return local_midnight.astimezone(timezone.utc)


def _status(count: int, limit: int) -> dict:
    return {
        "count":        count,
        "remaining":    max(0, limit - count),
        "limitReached": count >= limit,
    }


def check_daily_limit(
    db: Session, user_id: int | None, now: datetime | None = None, in_flight: int = 0
) -> dict:
    """
    Count the user's downloads in the current window, plus `in_flight`
    transfers that are authorised but not recorded yet.

    On storage errors the result depends on DOWNLOAD_QUOTA_FAIL_OPEN:
    fail-open ignores the ledger and counts only `in_flight`, fail-closed
    raises a 500.
    """
    limit = settings.DAILY_DOWNLOAD_LIMIT
    if user_id is None:
        return _status(0, limit)

    since = quota_window_start(now)
    try:
        count = db.query(func.count(Download.id)).filter(
            Download.userId == user_id,
            Download.downloadedAt >= since,
        ).scalar() or 0
    except SQLAlchemyError as e:
        db.rollback()
        if not settings.DOWNLOAD_QUOTA_FAIL_OPEN:
            logger.error(f"Quota check failed for user {user_id}: {e}")
            raise TransientStorageException("Error checking download limit. Please try again.")
        logger.warning(f"Quota check failed for user {user_id}, failing open: {e}")
        return _status(in_flight, limit)
    return _status(count + in_flight, limit)


def record_download(
    db: Session,
    user_id: int,
    post_id: int,
    kind: str,
    file_name: str,
    ip_address: str | None,
    user_agent: str | None,
) -> Download:
    """Append one ledger row. Caller commits."""
    row = Download(
        userId=user_id,
        postId=post_id,
        fileType=DownloadKind(kind),
        fileName=file_name,
        ipAddress=ip_address,
        userAgent=(user_agent or "")[:500] or None,
    )
    db.add(row)
    db.flush()
    return row


# ─── Admin reporting ──────────────────────────────────────────────────────────
def get_user_history(db: Session, user_id: int, limit: int = 50) -> list[dict]:
    rows = db.query(Download).filter(Download.userId == user_id)\
             .order_by(Download.downloadedAt.desc(), Download.id.desc())\
             .limit(limit).all()
    return [{
        "id":           d.id,
        "post":         {"id": d.post.id, "title": d.post.title, "slug": d.post.slug} if d.post else None,
        "fileType":     d.fileType.value,
        "fileName":     d.fileName,
        "ipAddress":    d.ipAddress,
        "downloadedAt": d.downloadedAt.isoformat() if d.downloadedAt else None,
    } for d in rows]


def get_post_stats(db: Session, post_id: int) -> dict:
    rows = db.query(
        Download.fileType,
        func.count(Download.id),
        func.count(func.distinct(Download.userId)),
    ).filter(Download.postId == post_id).group_by(Download.fileType).all()

    breakdown = [
        {"fileType": kind.value, "downloads": total, "uniqueUsers": users}
        for kind, total, users in rows
    ]
    return {
        "postId":         post_id,
        "totalDownloads": sum(b["downloads"] for b in breakdown),
        "breakdown":      sorted(breakdown, key=lambda b: b["fileType"]),
    }
