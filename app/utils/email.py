import logging

logger = logging.getLogger(__name__)

# SMTP disabled — messages are written to the log for development.
# Replace with a real provider (SendGrid / Resend / SMTP) when ready.


def send_otp_email(to_email: str, name: str, otp_code: str, expires_minutes: int) -> bool:
    """Account verification code sent after POST /register."""
    logger.info("=" * 60)
    logger.info(f"[OTP EMAIL]  To      : {to_email}")
    logger.info(f"[OTP EMAIL]  Name    : {name}")
    logger.info(f"[OTP CODE]   >>>     : {otp_code}")
    logger.info(f"[OTP EMAIL]  Expires : {expires_minutes} minutes")
    logger.info("=" * 60)
    return True


def send_account_verified_email(to_email: str, name: str) -> bool:
    logger.info(f"[VERIFIED EMAIL] To={to_email} | Welcome aboard, {name}!")
    return True


def send_password_reset_email(to_email: str, name: str, otp_code: str, expires_minutes: int) -> bool:
    logger.info("=" * 60)
    logger.info(f"[RESET EMAIL] To      : {to_email}")
    logger.info(f"[RESET EMAIL] Name    : {name}")
    logger.info(f"[RESET CODE]  >>>     : {otp_code}")
    logger.info(f"[RESET EMAIL] Expires : {expires_minutes} minutes")
    logger.info("=" * 60)
    return True


def send_password_changed_email(to_email: str, name: str) -> bool:
    logger.info(f"[PASSWORD EMAIL] To={to_email} | Password changed for {name}")
    return True
