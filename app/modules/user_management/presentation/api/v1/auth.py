# 📄 File: app/modules/user_management/presentation/api/v1/auth.py
# 🧭 Purpose (Layman Explanation):
# This file contains the web endpoints farmers use to sign up, log in, ask for a password reset
# and look at or change their profile.
#
# 🧪 Purpose (Technical Summary):
# FastAPI authentication endpoints behind the admission pipeline. Registration and login run on
# the "auth" rate limit tier and refund successful attempts; password reset runs on the
# "password-reset" tier; profile endpoints require a verified bearer token.
#
# 🔗 Dependencies:
# - FastAPI router
# - app.shared.core.dependencies (admission pipeline)
# - app.shared.core.security (tokens, password hashing)
# - app.modules.user_management.presentation.api.schemas.auth_schemas
#
# 🔄 Connected Modules / Calls From:
# - app.api.v1.router (router inclusion)
# - Mobile app login and profile screens

"""
Authentication API Endpoints

Endpoints:
- POST /register: Create an account and return an access token
- POST /login: Email/password authentication
- POST /reset-password: Password reset initiation
- GET /profile: Current user's profile
- PUT /profile: Update the current user's profile
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status

from app.modules.user_management.presentation.api.schemas.auth_schemas import (
    LoginRequest,
    PasswordResetRequest,
    RegisterRequest,
    UpdateProfileRequest,
    public_user,
)
from app.shared.core.dependencies import AUTH_NONE, RequestContext, admit, get_document_store, get_pipeline
from app.shared.core.exceptions import AuthenticationError, AuthReason, ConflictError, NotFoundError
from app.shared.core.security import get_password_hash, verify_password
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

USERS = "users"

# Create router
auth_router = APIRouter()


def _token_response(request: Request, user: Dict[str, Any], message: str) -> Dict[str, Any]:
    tokens = get_pipeline(request).authenticator.tokens
    return {
        "success": True,
        "message": message,
        "data": {
            "user": public_user(user),
            "token": tokens.create_access_token(user["_id"], {"email": user["email"]}),
        },
    }


@auth_router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register new user account",
)
async def register(
    request: Request,
    ctx: RequestContext = Depends(admit("auth", auth=AUTH_NONE, body=RegisterRequest)),
) -> Dict[str, Any]:
    """
    Register a new farmer account.

    Raises:
        ConflictError: An account already uses the email address
    """
    store = get_document_store(request)
    data: RegisterRequest = ctx.body

    if await store.find_one(USERS, email=data.email) is not None:
        raise ConflictError(
            "User already exists with this email",
            resource_type="user",
            conflict_field="email",
        )

    user = await store.insert(USERS, {
        "name": data.name,
        "email": data.email,
        "passwordHash": get_password_hash(data.password),
        "location": data.location,
        "phone": data.phone,
        "isActive": True,
    })
    await ctx.report_success()

    logger.info("User registered", user_id=user["_id"])
    return _token_response(request, user, "User registered successfully")


@auth_router.post("/login", summary="Log in with email and password")
async def login(
    request: Request,
    ctx: RequestContext = Depends(admit("auth", auth=AUTH_NONE, body=LoginRequest)),
) -> Dict[str, Any]:
    """
    Authenticate with email and password.

    Failed attempts count against the "auth" tier; a successful login is
    refunded so legitimate users are not locked out.
    """
    store = get_document_store(request)
    credentials: LoginRequest = ctx.body

    user = await store.find_one(USERS, email=credentials.email)
    if user is None or not verify_password(credentials.password, user.get("passwordHash", "")):
        logger.security.log_authentication(
            reason="invalid_credentials", success=False, ip_address=ctx.client_ip, path=request.url.path
        )
        raise AuthenticationError("Invalid email or password")

    if not user.get("isActive", True):
        raise AuthenticationError("User account is inactive", reason=AuthReason.USER_INACTIVE)

    await ctx.report_success()
    logger.security.log_authentication(
        reason="password", success=True, ip_address=ctx.client_ip, path=request.url.path, user_id=user["_id"]
    )
    return _token_response(request, user, "Login successful")


@auth_router.post("/reset-password", summary="Request a password reset")
async def reset_password(
    request: Request,
    ctx: RequestContext = Depends(admit("password-reset", auth=AUTH_NONE, body=PasswordResetRequest)),
) -> Dict[str, Any]:
    """
    Start a password reset.

    The response is the same whether or not the email is registered.
    """
    store = get_document_store(request)
    user = await store.find_one(USERS, email=ctx.body.email.lower())
    if user is not None:
        await store.update(USERS, user["_id"], {"passwordResetRequested": True})
        logger.info("Password reset requested", user_id=user["_id"])

    return {
        "success": True,
        "message": "If an account exists for this email, reset instructions have been sent.",
    }


@auth_router.get("/profile", summary="Get current user's profile")
async def get_profile(
    request: Request,
    ctx: RequestContext = Depends(admit()),
) -> Dict[str, Any]:
    user = await get_document_store(request).find_by_id(USERS, ctx.principal.id)
    if user is None:
        raise NotFoundError("User not found", resource_type="user", resource_id=ctx.principal.id)
    return {"success": True, "data": public_user(user)}


@auth_router.put("/profile", summary="Update current user's profile")
async def update_profile(
    request: Request,
    ctx: RequestContext = Depends(admit(body=UpdateProfileRequest)),
) -> Dict[str, Any]:
    changes = ctx.body.model_dump(exclude_unset=True)
    user = await get_document_store(request).update(USERS, ctx.principal.id, changes)
    if user is None:
        raise NotFoundError("User not found", resource_type="user", resource_id=ctx.principal.id)
    return {"success": True, "message": "Profile updated successfully", "data": public_user(user)}
