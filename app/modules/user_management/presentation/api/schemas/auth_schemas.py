# 📄 File: app/modules/user_management/presentation/api/schemas/auth_schemas.py
# 🧭 Purpose (Layman Explanation):
# This file defines the data formats for sign-up, login, password reset and profile
# requests so bad input is rejected before it reaches the account logic.
#
# 🧪 Purpose (Technical Summary):
# Pydantic request schemas for the authentication endpoints, validated by the admission
# pipeline's RequestValidator (all errors collected, unknown fields dropped).
#
# 🔗 Dependencies:
# - pydantic (EmailStr via email-validator)
#
# 🔄 Connected Modules / Calls From:
# - app.modules.user_management.presentation.api.v1.auth

"""
Authentication API Schemas

Request Schemas:
- RegisterRequest: New account data
- LoginRequest: Email/password credentials
- PasswordResetRequest: Password reset initiation
- UpdateProfileRequest: Profile changes
"""

import re
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

PHONE_PATTERN = re.compile(r"^[+]?[1-9][\d]{0,15}$")

PRIVATE_USER_FIELDS = ("passwordHash",)


def _validate_phone(value: Optional[str]) -> Optional[str]:
    if value and not PHONE_PATTERN.match(value):
        raise ValueError("Please provide a valid phone number")
    return value


class RegisterRequest(BaseModel):
    """New farmer account."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=50, description="Display name")
    email: EmailStr = Field(..., description="Login email address")
    password: str = Field(..., min_length=6, max_length=100, description="Account password")
    location: str = Field(default="", max_length=100, description="Village, district or region")
    phone: str = Field(default="", description="Phone number with optional leading +")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Validate email format and normalize to lowercase."""
        return v.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _validate_phone(v)


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    email: EmailStr = Field(..., description="Login email address")
    password: str = Field(..., min_length=1, max_length=100, description="Account password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class PasswordResetRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    email: EmailStr = Field(..., description="Email address of the account")


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    phone: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None, max_length=100)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)


def public_user(document: Mapping[str, Any]) -> Dict[str, Any]:
    """User document without credentials."""
    return {key: value for key, value in document.items() if key not in PRIVATE_USER_FIELDS}
