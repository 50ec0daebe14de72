from urllib.parse import quote

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.auth import (
    RegisterRequest, VerifyRegistrationRequest, LoginRequest,
    ForgotPasswordRequest, ResetPasswordRequest,
)
from app.schemas.common import SuccessResponse, success_response
from app.services.auth_service import auth_service, serialize_user
from app.stores import EphemeralStores, get_stores

router = APIRouter()


# ─── POST /register ───────────────────────────────────────────────────────────
@router.post(
    "/register",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start registration and email a verification OTP",
    response_model=SuccessResponse,
)
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    stores: EphemeralStores = Depends(get_stores),
):
    """
    The account is only created once the OTP is confirmed via POST /verify.
    Registering again before that replaces the previous OTP.
    """
    email = auth_service.register(db, stores, data)
    return success_response(
        f"OTP sent to {email}. It expires in {settings.OTP_EXPIRE_MINUTES} minutes.",
        {"email": email, "next": f"/verify?email={quote(email)}"},
    )


# ─── POST /verify ─────────────────────────────────────────────────────────────
@router.post(
    "/verify",
    status_code=status.HTTP_201_CREATED,
    summary="Confirm the registration OTP and create the account",
    response_model=SuccessResponse,
)
def verify(
    data: VerifyRegistrationRequest,
    db: Session = Depends(get_db),
    stores: EphemeralStores = Depends(get_stores),
):
    user = auth_service.verify_registration(db, stores, data)
    return success_response("Account verified. Please log in.", {
        "user": serialize_user(user),
        "next": "/login",
    })


# ─── POST /login ──────────────────────────────────────────────────────────────
@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    summary="Login; sets the auth cookie and returns the access token",
    response_model=SuccessResponse,
)
def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    result = auth_service.login(db, data)
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        result["accessToken"],
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return success_response("Login successful", result)


# ─── POST /logout ─────────────────────────────────────────────────────────────
@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    summary="Clear the auth cookie",
    response_model=SuccessResponse,
)
def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return success_response("Logged out successfully", {"next": "/login"})


# ─── GET /me ──────────────────────────────────────────────────────────────────
@router.get(
    "/me",
    status_code=status.HTTP_200_OK,
    summary="Get current authenticated user profile",
    response_model=SuccessResponse,
)
def get_me(current_user: User = Depends(get_current_user)):
    return success_response("User profile retrieved", {
        **serialize_user(current_user),
        "createdAt": current_user.createdAt.isoformat() if current_user.createdAt else None,
    })


# ─── POST /forgot-password ────────────────────────────────────────────────────
@router.post(
    "/forgot-password",
    status_code=status.HTTP_200_OK,
    summary="Request OTP for password reset",
    response_model=SuccessResponse,
)
def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    stores: EphemeralStores = Depends(get_stores),
):
    """
    Sends an OTP to the registered email address.
    Always returns 200 — even if email does not exist (prevents enumeration).
    """
    auth_service.forgot_password(db, stores, data)
    return success_response("If the email exists, an OTP has been sent.", None)


# ─── POST /reset-password ─────────────────────────────────────────────────────
@router.post(
    "/reset-password",
    status_code=status.HTTP_200_OK,
    summary="Reset password with the emailed OTP",
    response_model=SuccessResponse,
)
def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    stores: EphemeralStores = Depends(get_stores),
):
    auth_service.reset_password(db, stores, data)
    return success_response("Password reset successfully. Please login with your new password.", None)
