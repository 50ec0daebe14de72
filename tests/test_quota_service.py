from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.config import settings
from app.models import Download, DownloadKind
from app.services import quota_service
from app.utils.exceptions import TransientStorageException
from conftest import make_user, make_post


def _add_download(db, user, post, at):
    db.add(Download(userId=user.id, postId=post.id, fileType=DownloadKind.PDF,
                    fileName="guide.pdf", downloadedAt=at))
    db.commit()


class BrokenSession:
    def query(self, *args, **kwargs):
        raise OperationalError("SELECT count(*) FROM downloads", {}, Exception("database is down"))

    def rollback(self):
        pass


def test_calendar_day_window_starts_at_local_midnight():
    now = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)
    start = quota_service.quota_window_start(now, "calendar_day")
    local = start.astimezone()
    assert (local.hour, local.minute, local.second) == (0, 0, 0)
    assert timedelta(0) <= now - start < timedelta(hours=24)


def test_rolling_window_is_24_hours():
    now = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)
    assert quota_service.quota_window_start(now, "rolling_24h") == now - timedelta(hours=24)


def test_counts_only_downloads_inside_window(db, upload_root):
    user = make_user(db)
    post = make_post(db, upload_root)
    now = datetime.now(timezone.utc)
    start = quota_service.quota_window_start(now)

    _add_download(db, user, post, start - timedelta(minutes=1))
    _add_download(db, user, post, now)
    _add_download(db, user, post, now)

    status = quota_service.check_daily_limit(db, user.id, now)
    assert status == {"count": 2, "remaining": 3, "limitReached": False}


def test_limit_reached_at_cap(db, upload_root):
    user = make_user(db)
    other = make_user(db, email="other@example.com")
    post = make_post(db, upload_root)
    now = datetime.now(timezone.utc)
    for _ in range(settings.DAILY_DOWNLOAD_LIMIT):
        _add_download(db, user, post, now)
    _add_download(db, other, post, now)

    assert quota_service.check_daily_limit(db, user.id, now) == {
        "count": 5, "remaining": 0, "limitReached": True,
    }
    assert quota_service.check_daily_limit(db, other.id, now)["remaining"] == 4


def test_anonymous_user_gets_full_quota(db):
    assert quota_service.check_daily_limit(db, None) == {"count": 0, "remaining": 5, "limitReached": False}


def test_storage_error_fails_open_by_default():
    assert quota_service.check_daily_limit(BrokenSession(), 1) == {
        "count": 0, "remaining": settings.DAILY_DOWNLOAD_LIMIT, "limitReached": False,
    }


def test_storage_error_fails_closed_when_configured(monkeypatch):
    monkeypatch.setattr(settings, "DOWNLOAD_QUOTA_FAIL_OPEN", False)
    with pytest.raises(TransientStorageException):
        quota_service.check_daily_limit(BrokenSession(), 1)


def test_record_download_appends_row(db, upload_root):
    user = make_user(db)
    post = make_post(db, upload_root)

    row = quota_service.record_download(db, user.id, post.id, "pdf", "guide.pdf", "10.0.0.1", "pytest")
    db.commit()

    assert row.id is not None
    assert row.fileType == DownloadKind.PDF
    assert db.query(Download).count() == 1
    assert quota_service.check_daily_limit(db, user.id)["count"] == 1


def test_post_stats_group_by_kind(db, upload_root):
    a = make_user(db)
    b = make_user(db, email="b@example.com")
    post = make_post(db, upload_root, zip="zips/guide.zip")
    for user, kind in [(a, "pdf"), (a, "pdf"), (b, "pdf"), (b, "zip")]:
        quota_service.record_download(db, user.id, post.id, kind, "f", None, None)
    db.commit()

    stats = quota_service.get_post_stats(db, post.id)
    assert stats["totalDownloads"] == 4
    assert stats["breakdown"] == [
        {"fileType": "pdf", "downloads": 3, "uniqueUsers": 2},
        {"fileType": "zip", "downloads": 1, "uniqueUsers": 1},
    ]


def test_in_flight_transfers_are_counted(db, upload_root):
    user = make_user(db)
    post = make_post(db, upload_root)
    now = datetime.now(timezone.utc)
    for _ in range(3):
        _add_download(db, user, post, now)

    assert quota_service.check_daily_limit(db, user.id, now, in_flight=2) == {
        "count": 5, "remaining": 0, "limitReached": True,
    }
    assert quota_service.check_daily_limit(BrokenSession(), user.id, in_flight=1)["remaining"] == 4
