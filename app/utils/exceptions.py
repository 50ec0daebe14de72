from fastapi import HTTPException, status


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES — Machine-readable constants for frontend switch/case
# ═══════════════════════════════════════════════════════════════════════════════
class ErrorCode:
    VALIDATION_ERROR        = "VALIDATION_ERROR"
    UNAUTHORIZED            = "UNAUTHORIZED"
    TOKEN_EXPIRED           = "TOKEN_EXPIRED"
    FORBIDDEN               = "FORBIDDEN"
    ACCOUNT_NOT_VERIFIED    = "ACCOUNT_NOT_VERIFIED"
    NOT_FOUND               = "NOT_FOUND"
    DUPLICATE_ENTRY         = "DUPLICATE_ENTRY"
    OTP_INVALID             = "OTP_INVALID"
    OTP_EXPIRED             = "OTP_EXPIRED"
    DOWNLOAD_LINK_INVALID   = "DOWNLOAD_LINK_INVALID"
    DOWNLOAD_FORBIDDEN      = "DOWNLOAD_FORBIDDEN"
    QUOTA_EXCEEDED          = "QUOTA_EXCEEDED"
    STORAGE_ERROR           = "STORAGE_ERROR"
    INTERNAL_SERVER_ERROR   = "INTERNAL_SERVER_ERROR"


# ═══════════════════════════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════════════════════════
class AppException(HTTPException):
    """
    Base exception for all application-level errors.
    Carries a machine-readable error_code for frontend handling.
    `extra` is merged into the top level of the error envelope.
    """
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str,
        details: list | None = None,
        field: str | None = None,
        extra: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail={
            "message": message,
            "error": {
                "code": error_code,
                "details": details,
                "field": field,
            },
            "extra": extra or {},
        })


# ═══════════════════════════════════════════════════════════════════════════════
# CONCRETE EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class ValidationException(AppException):
    def __init__(self, message: str = "Invalid input", field: str | None = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, ErrorCode.VALIDATION_ERROR, field=field)


class UnauthorizedException(AppException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, ErrorCode.UNAUTHORIZED)


class TokenExpiredException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Access token has expired", ErrorCode.TOKEN_EXPIRED)


class ForbiddenException(AppException):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(status.HTTP_403_FORBIDDEN, message, ErrorCode.FORBIDDEN)


class AccountNotVerifiedException(AppException):
    def __init__(self):
        super().__init__(
            status.HTTP_403_FORBIDDEN,
            "Please verify your account first.",
            ErrorCode.ACCOUNT_NOT_VERIFIED,
        )


class NotFoundException(AppException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource} not found", ErrorCode.NOT_FOUND)


class DuplicateEntryException(AppException):
    def __init__(self, message: str = "Record already exists", field: str | None = None):
        super().__init__(status.HTTP_409_CONFLICT, message, ErrorCode.DUPLICATE_ENTRY, field=field)


class OTPInvalidException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_400_BAD_REQUEST, "OTP code is invalid", ErrorCode.OTP_INVALID)


class OTPExpiredException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_400_BAD_REQUEST, "OTP code has expired", ErrorCode.OTP_EXPIRED)


class DownloadLinkInvalidException(AppException):
    def __init__(self):
        super().__init__(
            status.HTTP_403_FORBIDDEN,
            "Invalid or expired download link",
            ErrorCode.DOWNLOAD_LINK_INVALID,
        )


class DownloadForbiddenException(AppException):
    def __init__(self):
        super().__init__(
            status.HTTP_403_FORBIDDEN,
            "This download link was issued to another account",
            ErrorCode.DOWNLOAD_FORBIDDEN,
        )


class QuotaExceededException(AppException):
    def __init__(self, limit: int, count: int, remaining: int):
        super().__init__(
            status.HTTP_429_TOO_MANY_REQUESTS,
            f"Daily download limit reached. You can download {limit} files per day. Try again tomorrow.",
            ErrorCode.QUOTA_EXCEEDED,
            extra={"downloadCount": count, "remaining": remaining},
        )


class TransientStorageException(AppException):
    def __init__(self, message: str = "Storage is temporarily unavailable. Please try again."):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, message, ErrorCode.STORAGE_ERROR)
