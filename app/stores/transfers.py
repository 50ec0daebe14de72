"""Downloads whose token was consumed but whose ledger row is not written yet."""
from app.stores.download_tokens import DownloadGrant
from app.stores.expiring import ExpiringStore


class TransfersInFlight(ExpiringStore[int]):
    """
    token → user id, for every transfer currently streaming.

    Entries count against the owner's quota until finish() is called. A
    transfer that never reports back lapses after `ttl`.
    """

    def start(self, grant: DownloadGrant) -> None:
        self.put(grant.token, grant.user_id, self.expiry_from_now())

    def finish(self, token: str) -> None:
        self.pop(token)

    def count_for(self, user_id: int) -> int:
        with self.lock:
            return sum(
                1 for e in self._entries.values()
                if e.value == user_id and not self.is_expired(e)
            )
