"""OTP challenges for account registration and password reset."""
import abc
import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, TypeVar

from app.stores.expiring import Clock, ExpiringStore
from app.utils.security import generate_otp, otps_match


class OTPCheck(str, enum.Enum):
    VALID     = "VALID"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED   = "EXPIRED"
    MISMATCH  = "MISMATCH"


@dataclass
class PendingRegistration:
    name: str
    email: str
    password_hash: str
    otp: str
    expires_at: datetime


@dataclass
class PasswordResetRequest:
    email: str
    otp: str
    expires_at: datetime


T = TypeVar("T", PendingRegistration, PasswordResetRequest)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class OTPStore(ExpiringStore[T], Generic[T], abc.ABC):
    """
    One pending challenge per email. Issuing again replaces the old one.

    verify() outcomes:
      MISMATCH  — entry kept so the user can retry
      EXPIRED   — entry deleted
      VALID     — entry deleted (one-shot)
    """

    def __init__(self, ttl: timedelta, otp_length: int = 6, clock: Clock | None = None):
        super().__init__(ttl, clock)
        self.otp_length = otp_length

    @abc.abstractmethod
    def _build(self, email: str, otp: str, expires_at: datetime, **fields) -> T:
        ...

    def issue(self, email: str, **fields) -> T:
        email = normalize_email(email)
        challenge = self._build(email, generate_otp(self.otp_length), self.expiry_from_now(), **fields)
        self.put(email, challenge, challenge.expires_at)
        return challenge

    def verify(self, email: str, otp: str | int) -> tuple[OTPCheck, T | None]:
        email = normalize_email(email)
        with self.lock:
            entry = self.entry(email)
            if entry is None:
                return OTPCheck.NOT_FOUND, None
            if self.is_expired(entry):
                self.pop(email)
                return OTPCheck.EXPIRED, None
            if not otps_match(entry.value.otp, otp):
                return OTPCheck.MISMATCH, None
            self.pop(email)
            return OTPCheck.VALID, entry.value


class PendingRegistrationStore(OTPStore[PendingRegistration]):
    def _build(self, email, otp, expires_at, *, name: str, password_hash: str):
        if not password_hash:
            raise ValueError("Pending registration needs a password hash")
        return PendingRegistration(
            name=name, email=email, password_hash=password_hash,
            otp=otp, expires_at=expires_at,
        )


class PasswordResetStore(OTPStore[PasswordResetRequest]):
    def _build(self, email, otp, expires_at):
        return PasswordResetRequest(email=email, otp=otp, expires_at=expires_at)
