"""
Pydantic schemas for user accounts.
"""
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from schemas.common import PartialUpdate, UserStatus


class UserBase(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100, description="Given name", example="Jane")
    last_name: Optional[str] = Field(None, max_length=100, description="Family name", example="Smith")
    phone: Optional[str] = Field(None, max_length=30, description="Contact phone number")
    clinic_id: Optional[int] = Field(None, description="Clinic the user belongs to")
    role_id: Optional[int] = Field(None, description="Role granting module permissions")


class UserCreate(UserBase):
    """Schema for creating a user account.

    When ``username`` is omitted the email address is used.
    """
    email: EmailStr = Field(..., description="Login email (unique)", example="jane.smith@clinic.com")
    username: Optional[str] = Field(None, min_length=3, max_length=100, description="Unique username")
    password: str = Field(..., min_length=8, max_length=128, description="Initial password")
    user_type: str = Field(..., min_length=1, max_length=50, description="Account type", example="Staff")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "jane.smith@clinic.com",
                "password": "changeme123",
                "user_type": "Staff",
                "first_name": "Jane",
                "last_name": "Smith",
                "clinic_id": 1,
                "role_id": 3,
            }
        }


class UserUpdate(UserBase, PartialUpdate):
    not_null = ("email", "username", "user_type")

    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    user_type: Optional[str] = Field(None, min_length=1, max_length=50)


class UserStatusUpdate(BaseModel):
    status: UserStatus = Field(..., description="New account status")


class UserResponse(BaseModel):
    """User account as returned by the API. Never includes the password hash."""
    id: int
    username: str
    email: str
    user_type: str
    clinic_id: Optional[int] = None
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    status: str
    last_login_at: Optional[str] = None
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True
