"""
Auth router - login, token verification and password reset.

Login and the password reset endpoints are public; verify-token and
logout require a bearer token.

Architecture:
    HTTP Request → Router (this file) → AuthService → UserRepository → Database
"""
import logging

from fastapi import APIRouter, Depends

from core.auth import CurrentUser, get_current_user
from core.dependencies import get_auth_service
from schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    VerifyTokenResponse,
)
from services import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in",
    description="Exchange email and password for a JWT. Tokens last 24 hours, or 30 days with remember_me."
)
async def login(body: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Authenticate with email and password.

    Returns 401 "Invalid credentials" for an unknown email or wrong
    password, and 401 "Account is deactivated" for inactive accounts.
    """
    return auth_service.login(body.email, body.password, remember_me=body.remember_me)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log out",
    description="Tokens are stateless; the client discards its token. This only acknowledges the request."
)
async def logout(current_user: CurrentUser = Depends(get_current_user)):
    logger.info(f"User {current_user.id} logged out")
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/verify-token",
    response_model=VerifyTokenResponse,
    summary="Verify the bearer token",
    description="Return the authenticated user with their effective module-operation permissions."
)
async def verify_token(
    current_user: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    return auth_service.verify(current_user.id)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request a password reset",
    description="Always returns the same message so the response does not reveal which emails are registered."
)
async def forgot_password(body: ForgotPasswordRequest, auth_service: AuthService = Depends(get_auth_service)):
    return MessageResponse(message=auth_service.forgot_password(body.email))


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset a password",
    description="Set a new password using an unused, unexpired reset token. Returns 400 for a bad token."
)
async def reset_password(body: ResetPasswordRequest, auth_service: AuthService = Depends(get_auth_service)):
    auth_service.reset_password(body.token, body.new_password)
    return MessageResponse(message="Password has been reset successfully")
