"""
Security utilities for password hashing and JWT token handling.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from core.config import settings
from core.exceptions import AuthenticationException
from core.logging import security_logger
from storage.selector import StorageSession, get_storage

logger = security_logger

# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

# HTTP Bearer token scheme; missing headers are reported by get_current_user
security = HTTPBearer(auto_error=False)


class InvalidTokenException(AuthenticationException):
    def __init__(self, detail: str = "Invalid access token"):
        super().__init__(detail)


class ExpiredTokenException(AuthenticationException):
    def __init__(self, detail: str = "Access token expired"):
        super().__init__(detail)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against its hash.

    Args:
        plain_password: The plain text password
        hashed_password: The hashed password to verify against

    Returns:
        bool: True if password matches, False otherwise
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        # Malformed digest; treat as a mismatch.
        logger.error("Password verification error", error=str(e))
        return False


def get_password_hash(password: str) -> str:
    """Hash a plain password."""
    return pwd_context.hash(password)


async def hash_password(password: str) -> str:
    """Hash in a worker thread so the event loop keeps serving requests."""
    return await asyncio.to_thread(get_password_hash, password)


async def check_password(plain_password: str, hashed_password: str) -> bool:
    return await asyncio.to_thread(verify_password, plain_password, hashed_password)


def create_access_token(account_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token carrying the account identifier.

    Args:
        account_id: Identifier of the authenticated account
        expires_delta: Optional custom expiration time

    Returns:
        str: The encoded JWT token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.jwt_access_token_expire_days))
    payload = {"userId": account_id, "iat": now, "exp": expire}
    token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    logger.info("Access token created", user_id=account_id, expires_at=expire.isoformat())
    return token


def decode_access_token(token: str) -> str:
    """
    Verify a token and return the account identifier it carries.

    Raises:
        ExpiredTokenException: The token signature is valid but it has expired
        InvalidTokenException: The token is malformed, forged or lacks the claim
    """
    try:
        payload: Dict[str, Any] = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except ExpiredSignatureError:
        logger.info("Expired token presented")
        raise ExpiredTokenException()
    except JWTError as e:
        logger.warning("Token verification failed", error=str(e))
        raise InvalidTokenException()

    account_id = payload.get("userId")
    if not isinstance(account_id, str) or not account_id:
        logger.warning("Token missing userId claim")
        raise InvalidTokenException()
    return account_id


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    storage: StorageSession = Depends(get_storage),
) -> Dict[str, Any]:
    """
    Resolve the bearer token to an account using the request's storage session.

    Raises:
        AuthenticationException: If the token is missing or invalid, or the account is gone
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationException("Access token not provided")

    account_id = decode_access_token(credentials.credentials)
    account = await storage.accounts.get(account_id)
    if account is None:
        logger.warning("Account not found for token", user_id=account_id, storage=storage.mode)
        raise InvalidTokenException("User not found")
    return account

