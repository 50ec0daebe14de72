"""
Ephemeral (process-lifetime) state: pending registrations, password resets,
download tokens and transfers still streaming.

One EphemeralStores instance lives on `app.state.stores`; it is created with
the app, swept periodically while the app runs and cleared on shutdown.
"""
import asyncio
import logging
from datetime import timedelta

from fastapi import Request

from app.config import settings
from app.stores.expiring import Clock
from app.stores.otp import PendingRegistrationStore, PasswordResetStore
from app.stores.download_tokens import DownloadTokenStore
from app.stores.transfers import TransfersInFlight

logger = logging.getLogger(__name__)


class EphemeralStores:

    def __init__(self, clock: Clock | None = None):
        otp_ttl = timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
        self.registrations = PendingRegistrationStore(otp_ttl, settings.OTP_LENGTH, clock)
        self.password_resets = PasswordResetStore(otp_ttl, settings.OTP_LENGTH, clock)
        self.download_tokens = DownloadTokenStore(
            timedelta(minutes=settings.DOWNLOAD_TOKEN_EXPIRE_MINUTES), clock
        )
        self.transfers = TransfersInFlight(
            timedelta(minutes=settings.DOWNLOAD_TRANSFER_TIMEOUT_MINUTES), clock
        )

    def _all(self):
        return (self.registrations, self.password_resets, self.download_tokens, self.transfers)

    def sweep(self) -> int:
        return sum(store.sweep() for store in self._all())

    def clear(self) -> None:
        for store in self._all():
            store.clear()


async def sweep_periodically(stores: EphemeralStores, interval_seconds: float) -> None:
    """Background task: drop expired entries every `interval_seconds` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = stores.sweep()
        if removed:
            logger.info(f"Swept {removed} expired ephemeral entries")


def get_stores(request: Request) -> EphemeralStores:
    """FastAPI dependency returning the app's ephemeral stores."""
    return request.app.state.stores
