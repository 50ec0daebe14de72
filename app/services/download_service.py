import logging
import re
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.orm import Session, sessionmaker

from app.config import settings
from app.models.download import DownloadKind
from app.models.post import Post
from app.models.user import User
from app.services import quota_service
from app.stores import EphemeralStores
from app.stores.download_tokens import DownloadGrant, TokenCheck
from app.utils.audit import log_action
from app.utils.exceptions import (
    ValidationException, NotFoundException, QuotaExceededException,
    DownloadLinkInvalidException, DownloadForbiddenException,
)
from app.utils.files import resolve_attachment

logger = logging.getLogger(__name__)

_POST_ID_RE = re.compile(r"[1-9][0-9]{0,17}")
_KINDS = {k.value for k in DownloadKind}


@dataclass
class RedeemedFile:
    """A consumed grant and the file it resolved to, ready to stream."""
    grant: DownloadGrant
    path: Path

    @property
    def file_name(self) -> str:
        return self.path.name


class DownloadService:

    def __init__(self, upload_root: str | Path | None = None):
        self._upload_root = upload_root

    @property
    def upload_root(self) -> Path:
        return Path(self._upload_root or settings.UPLOAD_DIR)

    # ─── Helpers ──────────────────────────────────────────────────────────────
    def _ensure_quota(self, db: Session, stores: EphemeralStores, user_id: int) -> dict:
        status = quota_service.check_daily_limit(
            db, user_id, in_flight=stores.transfers.count_for(user_id)
        )
        if status["limitReached"]:
            raise QuotaExceededException(
                settings.DAILY_DOWNLOAD_LIMIT, status["count"], status["remaining"]
            )
        return status

    def _resolve_file(self, db: Session, post_id: int, kind: str) -> Path:
        post = db.query(Post).filter(Post.id == post_id).first()
        if not post:
            raise NotFoundException("Post")
        stored = post.attachment(kind)
        if not stored:
            raise NotFoundException(f"{kind.upper()} attachment")
        path = resolve_attachment(stored, self.upload_root)
        if path is None:
            logger.error(f"Attachment for post {post_id} ({kind}) missing or outside upload root")
            raise NotFoundException("File")
        return path

    # ─── Mint ─────────────────────────────────────────────────────────────────
    def generate_link(
        self, db: Session, stores: EphemeralStores, user: User, post_id: str, kind: str
    ) -> tuple[DownloadGrant, dict]:
        """
        Check quota and the attachment, then mint a grant for this user.
        Returns the grant and the quota status observed before minting.
        """
        if kind not in _KINDS:
            raise ValidationException("Invalid file type. Must be 'pdf' or 'zip'", field="type")
        if not _POST_ID_RE.fullmatch(post_id or ""):
            raise ValidationException("Invalid post ID format", field="postId")
        pid = int(post_id)

        status = self._ensure_quota(db, stores, user.id)
        self._resolve_file(db, pid, kind)

        grant = stores.download_tokens.mint(user.id, pid, kind)
        logger.info(f"Download link minted for {user.email}: post={pid} type={kind}")
        return grant, status

    # ─── Redeem ───────────────────────────────────────────────────────────────
    def redeem(
        self, db: Session, stores: EphemeralStores, token: str, user: User | None
    ) -> RedeemedFile:
        """
        Validate the token for `user`, re-check quota and the file, then consume
        the token. Until record_transfer() writes the ledger row the transfer
        counts against the quota as in flight.
        """
        check, grant = stores.download_tokens.check(token, user.id if user else None)
        if check == TokenCheck.INVALID:
            raise DownloadLinkInvalidException()
        if check == TokenCheck.UNAUTHORIZED:
            logger.warning(f"Download token presented by non-owner (user={user.id if user else None})")
            raise DownloadForbiddenException()

        self._ensure_quota(db, stores, user.id)
        path = self._resolve_file(db, grant.post_id, grant.kind)

        # Lost a race with a concurrent redemption of the same token.
        if stores.download_tokens.consume(token) is None:
            raise DownloadLinkInvalidException()
        stores.transfers.start(grant)
        return RedeemedFile(grant=grant, path=path)


def record_transfer(
    session_factory: sessionmaker,
    stores: EphemeralStores,
    redeemed: RedeemedFile,
    ip_address: str | None,
    user_agent: str | None,
) -> None:
    """Response background task: append the ledger row after a completed transfer."""
    grant = redeemed.grant
    db = session_factory()
    try:
        quota_service.record_download(
            db, grant.user_id, grant.post_id, grant.kind,
            redeemed.file_name, ip_address, user_agent,
        )
        log_action(db, grant.user_id, "DOWNLOAD", "Post", grant.post_id,
                   f"Downloaded {grant.kind} {redeemed.file_name}")
        db.commit()
        logger.info(f"Download recorded: user={grant.user_id} post={grant.post_id} type={grant.kind}")
    except Exception:
        db.rollback()
        logger.exception(f"Failed to record download for user={grant.user_id} post={grant.post_id}")
        raise
    finally:
        db.close()
        stores.transfers.finish(grant.token)


download_service = DownloadService()
