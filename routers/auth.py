"""
Authentication routes for registration, login and profile management.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from core.logging import get_logger
from core.security import create_access_token, get_current_user
from schemas.auth import ChangePasswordRequest, LoginRequest, RegisterRequest
from schemas.common import success_envelope
from schemas.user import ProfileUpdate, serialize_user
from services.account_service import AccountService
from storage.selector import StorageSession, get_storage

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

# Initialize logger for auth operations
logger = get_logger("auth")


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(payload: RegisterRequest, storage: StorageSession = Depends(get_storage)):
    """
    Register a new account and return it with an access token.

    - **username**: 3-30 characters, unique
    - **email**: unique, stored lowercase
    - **password**: at least 6 characters with a lowercase letter, an uppercase letter and a digit
    - **role**: teacher, student or admin (defaults to student)
    """
    account = await AccountService(storage).register(payload)
    token = create_access_token(account["id"])
    return success_envelope(
        {"user": serialize_user(account), "token": token},
        message="Registration successful",
    )


@router.post("/login")
async def login_user(payload: LoginRequest, storage: StorageSession = Depends(get_storage)):
    """Exchange email and password for an access token."""
    account = await AccountService(storage).authenticate(payload.email, payload.password)
    token = create_access_token(account["id"])
    return success_envelope({"user": serialize_user(account), "token": token}, message="Login successful")


@router.get("/profile")
async def get_profile(current_user: Dict[str, Any] = Depends(get_current_user)):
    return success_envelope({"user": serialize_user(current_user)})


@router.put("/profile")
async def update_profile(
    payload: ProfileUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
):
    account = await AccountService(storage).update_profile(current_user, payload)
    return success_envelope({"user": serialize_user(account)}, message="Profile updated")


@router.put("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
):
    await AccountService(storage).change_password(current_user, payload.current_password, payload.new_password)
    return success_envelope(message="Password changed successfully")
