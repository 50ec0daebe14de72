"""Single-use download grants bound to (user, post, kind)."""
import enum
from dataclasses import dataclass
from datetime import datetime

from app.stores.expiring import ExpiringStore
from app.utils.security import generate_download_token


class TokenCheck(str, enum.Enum):
    VALID        = "VALID"
    INVALID      = "INVALID"
    UNAUTHORIZED = "UNAUTHORIZED"


@dataclass
class DownloadGrant:
    token: str
    user_id: int
    post_id: int
    kind: str
    expires_at: datetime


class DownloadTokenStore(ExpiringStore[DownloadGrant]):

    def mint(self, user_id: int, post_id: int, kind: str) -> DownloadGrant:
        grant = DownloadGrant(
            token=generate_download_token(),
            user_id=user_id,
            post_id=post_id,
            kind=kind,
            expires_at=self.expiry_from_now(),
        )
        self.put(grant.token, grant, grant.expires_at)
        return grant

    def check(self, token: str, user_id: int | None) -> tuple[TokenCheck, DownloadGrant | None]:
        """
        Validate a token for the given caller without consuming it.
        A foreign caller gets UNAUTHORIZED and the grant stays usable by its owner.
        """
        grant = self.get(token)
        if grant is None:
            return TokenCheck.INVALID, None
        if user_id is None or grant.user_id != user_id:
            return TokenCheck.UNAUTHORIZED, None
        return TokenCheck.VALID, grant

    def consume(self, token: str) -> DownloadGrant | None:
        """Remove the grant. Only the caller that gets it back may stream the file."""
        with self.lock:
            grant = self.get(token)
            if grant is not None:
                self.pop(token)
            return grant
