import asyncio
from datetime import timedelta

import pytest

from app.stores import EphemeralStores, sweep_periodically
from app.stores.expiring import ExpiringStore
from app.stores.otp import OTPCheck, OTPStore, PendingRegistrationStore, PasswordResetStore
from app.stores.download_tokens import DownloadTokenStore, TokenCheck
from app.stores.transfers import TransfersInFlight


# ─── ExpiringStore ────────────────────────────────────────────────────────────
def test_get_evicts_expired_entry(clock):
    store = ExpiringStore(timedelta(minutes=1), clock)
    store.put("k", "v", store.expiry_from_now())
    assert store.get("k") == "v"

    clock.advance(minutes=1, seconds=1)
    assert store.get("k") is None
    assert "k" not in store


def test_sweep_only_drops_expired(clock):
    store = ExpiringStore(timedelta(minutes=5), clock)
    store.put("old", 1, store.expiry_from_now())
    clock.advance(minutes=4)
    store.put("new", 2, store.expiry_from_now())
    clock.advance(minutes=2)

    assert store.sweep() == 1
    assert "old" not in store
    assert store.get("new") == 2


def test_ephemeral_stores_sweep_and_clear(clock):
    stores = EphemeralStores(clock=clock)
    stores.registrations.issue("a@example.com", name="A", password_hash="h")
    stores.password_resets.issue("b@example.com")
    stores.download_tokens.mint(1, 1, "pdf")

    clock.advance(minutes=30)  # OTPs (10 min) expired, token (60 min) alive
    assert stores.sweep() == 2
    assert len(stores.download_tokens) == 1

    stores.clear()
    assert len(stores.download_tokens) == 0


# ─── OTP stores ───────────────────────────────────────────────────────────────
def test_otp_is_six_digits_in_range(clock):
    store = PendingRegistrationStore(timedelta(minutes=10), 6, clock)
    for i in range(50):
        otp = store.issue(f"user{i}@example.com", name="U", password_hash="h").otp
        assert len(otp) == 6
        assert 100000 <= int(otp) <= 999999


def test_registration_verify_is_one_shot(clock):
    store = PendingRegistrationStore(timedelta(minutes=10), 6, clock)
    pending = store.issue("Reader@Example.com ", name="Reader", password_hash="hash")

    check, entry = store.verify("reader@example.com", pending.otp)
    assert check == OTPCheck.VALID
    assert entry.name == "Reader"
    assert entry.password_hash == "hash"

    check, entry = store.verify("reader@example.com", pending.otp)
    assert check == OTPCheck.NOT_FOUND
    assert entry is None


def test_mismatch_keeps_entry_for_retry(clock):
    store = PendingRegistrationStore(timedelta(minutes=10), 6, clock)
    pending = store.issue("r@example.com", name="R", password_hash="h")
    wrong = "000000" if pending.otp != "000000" else "111111"

    assert store.verify("r@example.com", wrong)[0] == OTPCheck.MISMATCH
    assert store.verify("r@example.com", int(pending.otp))[0] == OTPCheck.VALID


def test_expired_otp_is_rejected_and_deleted(clock):
    store = PasswordResetStore(timedelta(minutes=10), 6, clock)
    reset = store.issue("r@example.com")
    clock.advance(minutes=10, seconds=1)

    assert store.verify("r@example.com", reset.otp)[0] == OTPCheck.EXPIRED
    assert store.verify("r@example.com", reset.otp)[0] == OTPCheck.NOT_FOUND


def test_reissue_overwrites_previous_otp(clock):
    store = PasswordResetStore(timedelta(minutes=10), 6, clock)
    first = store.issue("r@example.com")
    second = store.issue("r@example.com")

    assert len(store) == 1
    if first.otp != second.otp:
        assert store.verify("r@example.com", first.otp)[0] == OTPCheck.MISMATCH
    assert store.verify("r@example.com", second.otp)[0] == OTPCheck.VALID


# ─── Download tokens ──────────────────────────────────────────────────────────
def test_minted_token_is_256_bit_hex(clock):
    store = DownloadTokenStore(timedelta(hours=1), clock)
    grant = store.mint(7, 3, "zip")
    assert len(grant.token) == 64
    int(grant.token, 16)
    assert grant.expires_at == clock() + timedelta(hours=1)
    assert store.mint(7, 3, "zip").token != grant.token


def test_token_check_enforces_owner(clock):
    store = DownloadTokenStore(timedelta(hours=1), clock)
    grant = store.mint(1, 10, "pdf")

    assert store.check(grant.token, 2) == (TokenCheck.UNAUTHORIZED, None)
    assert store.check(grant.token, None) == (TokenCheck.UNAUTHORIZED, None)
    check, found = store.check(grant.token, 1)
    assert check == TokenCheck.VALID
    assert found.post_id == 10


def test_token_consume_is_single_use(clock):
    store = DownloadTokenStore(timedelta(hours=1), clock)
    grant = store.mint(1, 10, "pdf")

    assert store.consume(grant.token) is not None
    assert store.consume(grant.token) is None
    assert store.check(grant.token, 1) == (TokenCheck.INVALID, None)


def test_expired_token_is_invalid(clock):
    store = DownloadTokenStore(timedelta(hours=1), clock)
    grant = store.mint(1, 10, "pdf")
    clock.advance(hours=1, seconds=1)

    assert store.check(grant.token, 1) == (TokenCheck.INVALID, None)
    assert grant.token not in store
    assert store.consume(grant.token) is None


def test_otp_store_requires_a_builder(clock):
    with pytest.raises(TypeError):
        OTPStore(timedelta(minutes=10), 6, clock)


def test_pending_registration_needs_password_hash(clock):
    store = PendingRegistrationStore(timedelta(minutes=10), 6, clock)
    with pytest.raises(TypeError):
        store.issue("r@example.com", name="R")
    with pytest.raises(ValueError):
        store.issue("r@example.com", name="R", password_hash="")
    assert len(store) == 0


# ─── Transfers in flight ──────────────────────────────────────────────────────
def test_transfers_count_per_user_until_finished(clock):
    tokens = DownloadTokenStore(timedelta(hours=1), clock)
    transfers = TransfersInFlight(timedelta(minutes=30), clock)
    a1, a2, b1 = tokens.mint(1, 10, "pdf"), tokens.mint(1, 11, "zip"), tokens.mint(2, 10, "pdf")
    for grant in (a1, a2, b1):
        transfers.start(grant)

    assert transfers.count_for(1) == 2
    assert transfers.count_for(2) == 1
    transfers.finish(a1.token)
    assert transfers.count_for(1) == 1
    assert transfers.count_for(3) == 0


def test_abandoned_transfer_lapses(clock):
    transfers = TransfersInFlight(timedelta(minutes=30), clock)
    transfers.start(DownloadTokenStore(timedelta(hours=1), clock).mint(1, 10, "pdf"))

    clock.advance(minutes=30, seconds=1)
    assert transfers.count_for(1) == 0
    assert transfers.sweep() == 1


# ─── Periodic sweep ───────────────────────────────────────────────────────────
def test_sweep_task_drops_expired_entries_until_cancelled(clock):
    stores = EphemeralStores(clock=clock)
    stores.registrations.issue("a@example.com", name="A", password_hash="h")
    stores.password_resets.issue("b@example.com")
    grant = stores.download_tokens.mint(1, 1, "pdf")

    async def run():
        task = asyncio.create_task(sweep_periodically(stores, 0.01))
        await asyncio.sleep(0.03)
        assert grant.token in stores.download_tokens

        clock.advance(hours=1, seconds=1)
        await asyncio.sleep(0.05)
        assert len(stores.download_tokens) == 0
        assert len(stores.registrations) == 0
        assert len(stores.password_resets) == 0
        assert not task.done()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()

    asyncio.run(run())
