from pydantic import BaseModel, EmailStr, field_validator, model_validator

from app.config import settings


# ─── Helpers ──────────────────────────────────────────────────────────────────
def validate_password_length(v: str) -> str:
    if len(v) < settings.PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
    return v


# ─── Request Schemas ──────────────────────────────────────────────────────────
class RegisterRequest(BaseModel):
    name:     str
    email:    EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return validate_password_length(v)


class VerifyRegistrationRequest(BaseModel):
    email: EmailStr
    otp:   str

    @field_validator("otp", mode="before")
    @classmethod
    def otp_as_string(cls, v) -> str:
        v = str(v).strip()
        if not v.isdigit():
            raise ValueError("OTP must be numeric")
        return v


class LoginRequest(BaseModel):
    email:    EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email:           EmailStr
    otp:             str
    newPassword:     str
    confirmPassword: str

    @field_validator("otp", mode="before")
    @classmethod
    def otp_as_string(cls, v) -> str:
        v = str(v).strip()
        if not v.isdigit():
            raise ValueError("OTP must be numeric")
        return v

    @field_validator("newPassword")
    @classmethod
    def password_length(cls, v: str) -> str:
        return validate_password_length(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.newPassword != self.confirmPassword:
            raise ValueError("Passwords do not match")
        return self

