"""
Pydantic schemas for login, token verification and password reset.
"""
from typing import List

from pydantic import BaseModel, EmailStr, Field

from schemas.access import ModuleOperationResponse
from schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Credentials submitted to POST /api/v1/auth/login."""
    email: EmailStr = Field(..., description="Account email", example="superadmin@emr.com")
    password: str = Field(..., min_length=1, max_length=128, description="Account password")
    remember_me: bool = Field(False, description="Issue a long-lived (30 day) token")

    class Config:
        json_schema_extra = {
            "example": {"email": "superadmin@emr.com", "password": "superadmin123", "remember_me": False}
        }


class LoginResponse(BaseModel):
    access_token: str = Field(..., description="Signed JWT to send as 'Authorization: Bearer <token>'")
    token_type: str = Field("bearer", description="Always 'bearer'")
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserResponse
    is_super_admin: bool = False


class VerifyTokenResponse(BaseModel):
    valid: bool = True
    user: UserResponse
    is_super_admin: bool
    permissions: List[ModuleOperationResponse] = Field(
        default_factory=list, description="Effective module-operation grants (role + direct)"
    )


class ForgotPasswordRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address of the account")


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Token from the reset email")
    new_password: str = Field(..., min_length=8, max_length=128, description="New password")
