"""
Account Service for registration, login and profile management.
"""
from datetime import datetime, timezone
from typing import Any, Dict

from core.config import settings
from core.exceptions import AuthenticationException, ResourceNotFoundException, ValidationException
from core.logging import security_logger
from core.security import check_password, hash_password
from schemas.auth import RegisterRequest
from schemas.user import ProfileUpdate
from storage.errors import DuplicateKeyError
from storage.selector import StorageSession
from storage.volatile import VolatileBackend

logger = security_logger

INVALID_CREDENTIALS = "Invalid email or password"

DEMO_ACCOUNTS = (
    {"username": "teacher", "email": "teacher@example.com", "password": "Teacher123", "role": "teacher"},
    {"username": "student", "email": "student@example.com", "password": "Student123", "role": "student"},
)


def default_profile(display_name: str) -> Dict[str, Any]:
    return {
        "display_name": display_name,
        "bio": "",
        "institution": "",
        "subjects": [],
        "preferences": {"language": "zh-CN", "theme": "light", "ai_models": [], "content_types": []},
    }


class AccountService:
    """Service for account operations against the request's storage session."""

    def __init__(self, storage: StorageSession):
        self.storage = storage

    async def register(self, payload: RegisterRequest) -> Dict[str, Any]:
        """Create an account; the password is hashed before the store is touched."""
        password_hash = await hash_password(payload.password)
        account = await self.storage.accounts.create({
            "username": payload.username,
            "email": payload.email.lower(),
            "password_hash": password_hash,
            "role": payload.role or "student",
            "avatar": "",
            "profile": default_profile(payload.display_name or payload.username),
        })
        logger.info("Account registered", user_id=account["id"], role=account["role"], storage=self.storage.mode)
        return account

    async def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """Check credentials and stamp the login time. Failures never say which part was wrong."""
        account = await self.storage.accounts.find_by_email(email)
        if account is None or not await check_password(password, account["password_hash"]):
            logger.warning("Failed login attempt", storage=self.storage.mode)
            raise AuthenticationException(INVALID_CREDENTIALS)

        updated = await self.storage.accounts.update(
            account["id"], {"last_login_at": datetime.now(timezone.utc)}, validate=False
        )
        logger.info("User logged in", user_id=account["id"])
        return updated or account

    async def update_profile(self, account: Dict[str, Any], payload: ProfileUpdate) -> Dict[str, Any]:
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        profile = dict(account["profile"])
        preferences = dict(profile.get("preferences") or {})
        preferences.update(changes.pop("preferences", {}))
        profile["preferences"] = preferences

        updates: Dict[str, Any] = {}
        if "avatar" in changes:
            updates["avatar"] = changes.pop("avatar")
        profile.update(changes)
        updates["profile"] = profile

        updated = await self.storage.accounts.update(account["id"], updates)
        if updated is None:
            raise ResourceNotFoundException("User not found")
        return updated

    async def change_password(self, account: Dict[str, Any], current_password: str, new_password: str) -> None:
        if not await check_password(current_password, account["password_hash"]):
            raise ValidationException("Current password is incorrect")
        password_hash = await hash_password(new_password)
        updated = await self.storage.accounts.update(account["id"], {"password_hash": password_hash})
        if updated is None:
            raise ResourceNotFoundException("User not found")
        logger.info("Password changed", user_id=account["id"])


async def seed_demo_accounts(backend: VolatileBackend) -> int:
    """Create the demo teacher and student in the in-memory store. Returns how many were added."""
    if not settings.seed_demo_accounts:
        return 0
    created = 0
    for demo in DEMO_ACCOUNTS:
        try:
            await backend.accounts.create({
                "username": demo["username"],
                "email": demo["email"],
                "password_hash": await hash_password(demo["password"]),
                "role": demo["role"],
                "avatar": "",
                "profile": default_profile(demo["username"]),
            })
            created += 1
        except DuplicateKeyError:
            continue
    logger.info("Demo accounts ready", created=created, emails=[d["email"] for d in DEMO_ACCOUNTS])
    return created
