import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, ExpiredSignatureError, jwt
from passlib.context import CryptContext

from app.config import settings
from app.utils.exceptions import TokenExpiredException, UnauthorizedException

# ─── Password Hashing ─────────────────────────────────────────────────────────
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password using bcrypt."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain-text password against a bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ─── JWT ──────────────────────────────────────────────────────────────────────
def create_access_token(user_id: int, email: str, role: str) -> str:
    """
    Create the JWT stored in the auth cookie.
    Payload: sub (user_id), email, role, type, exp
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_access_token(token: str) -> dict:
    """
    Decode and validate a JWT access token.
    Raises 401 if invalid, 401 (TOKEN_EXPIRED) if expired.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        if payload.get("type") != "access":
            raise UnauthorizedException("Invalid token type")
        return payload
    except ExpiredSignatureError:
        raise TokenExpiredException()
    except JWTError:
        raise UnauthorizedException("Invalid or malformed token")


# ─── OTP / Download Tokens ────────────────────────────────────────────────────
def generate_otp(length: int = 6) -> str:
    """Numeric OTP drawn uniformly from [10^(length-1), 10^length - 1]."""
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def otps_match(expected: str, supplied: str | int) -> bool:
    """Constant-time OTP comparison; tolerates surrounding whitespace and int input."""
    return secrets.compare_digest(expected.encode(), str(supplied).strip().encode())


def generate_download_token() -> str:
    """Opaque 256-bit download token (64 hex chars)."""
    return secrets.token_hex(32)
