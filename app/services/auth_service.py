import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.user import User, UserRole
from app.schemas.auth import (
    RegisterRequest, VerifyRegistrationRequest, LoginRequest,
    ForgotPasswordRequest, ResetPasswordRequest,
)
from app.stores import EphemeralStores
from app.stores.otp import OTPCheck, normalize_email
from app.utils.security import verify_password, hash_password, create_access_token
from app.utils.email import (
    send_otp_email, send_account_verified_email,
    send_password_reset_email, send_password_changed_email,
)
from app.utils.audit import log_action
from app.utils.exceptions import (
    UnauthorizedException, AccountNotVerifiedException,
    NotFoundException, DuplicateEntryException,
    OTPInvalidException, OTPExpiredException,
)

logger = logging.getLogger(__name__)


def _raise_for(check: OTPCheck, what: str) -> None:
    if check == OTPCheck.NOT_FOUND:
        raise NotFoundException(what)
    if check == OTPCheck.EXPIRED:
        raise OTPExpiredException()
    if check == OTPCheck.MISMATCH:
        raise OTPInvalidException()


def serialize_user(user: User) -> dict:
    return {
        "id":         user.id,
        "name":       user.name,
        "email":      user.email,
        "role":       user.role.value,
        "isVerified": user.isVerified,
    }


class AuthService:

    # ─── Register ─────────────────────────────────────────────────────────────
    def register(self, db: Session, stores: EphemeralStores, data: RegisterRequest) -> str:
        """Park the registration until the emailed OTP is confirmed. Returns the email."""
        email = normalize_email(data.email)
        if db.query(User).filter(User.email == email).first():
            raise DuplicateEntryException("Email already registered", field="email")

        pending = stores.registrations.issue(
            email, name=data.name, password_hash=hash_password(data.password)
        )
        send_otp_email(email, data.name, pending.otp, settings.OTP_EXPIRE_MINUTES)
        logger.info(f"Registration OTP issued for {email}")
        return email

    # ─── Verify Registration ──────────────────────────────────────────────────
    def verify_registration(
        self, db: Session, stores: EphemeralStores, data: VerifyRegistrationRequest
    ) -> User:
        check, pending = stores.registrations.verify(data.email, data.otp)
        _raise_for(check, "Pending registration")

        user = User(
            name=pending.name,
            email=pending.email,
            password=pending.password_hash,
            isVerified=True,
            role=UserRole.USER,
        )
        db.add(user)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            raise DuplicateEntryException("Email already registered", field="email")

        log_action(db, user.id, "REGISTER", "User", user.id,
                   f"New user verified: {user.name} ({user.email})")
        db.commit()
        db.refresh(user)

        send_account_verified_email(user.email, user.name)
        logger.info(f"User verified: {user.email}")
        return user

    # ─── Login ────────────────────────────────────────────────────────────────
    def login(self, db: Session, data: LoginRequest) -> dict:
        user = db.query(User).filter(User.email == normalize_email(data.email)).first()

        if not user or not verify_password(data.password, user.password):
            raise UnauthorizedException("Invalid email or password")

        if not user.isVerified:
            raise AccountNotVerifiedException()

        access_token = create_access_token(user.id, user.email, user.role.value)

        log_action(db, user.id, "LOGIN", "User", user.id, f"{user.email} logged in")
        db.commit()

        return {
            "accessToken": access_token,
            "tokenType":   "Bearer",
            "expiresIn":   settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user":        serialize_user(user),
        }

    # ─── Forgot Password ──────────────────────────────────────────────────────
    def forgot_password(self, db: Session, stores: EphemeralStores, data: ForgotPasswordRequest) -> None:
        """
        Returns the same way whether or not the email exists (prevents enumeration).
        A reset OTP is only issued for verified accounts.
        """
        email = normalize_email(data.email)
        user = db.query(User).filter(User.email == email).first()
        if not user or not user.isVerified:
            return

        reset = stores.password_resets.issue(email)
        send_password_reset_email(user.email, user.name, reset.otp, settings.OTP_EXPIRE_MINUTES)

    # ─── Reset Password ───────────────────────────────────────────────────────
    def reset_password(self, db: Session, stores: EphemeralStores, data: ResetPasswordRequest) -> None:
        check, reset = stores.password_resets.verify(data.email, data.otp)
        _raise_for(check, "Password reset request")

        user = db.query(User).filter(User.email == reset.email).first()
        if not user:
            raise NotFoundException("User")

        user.password = hash_password(data.newPassword)
        log_action(db, user.id, "RESET_PASSWORD", "User", user.id, "Password reset via OTP")
        db.commit()

        send_password_changed_email(user.email, user.name)


auth_service = AuthService()
