"""
Request authentication.

Two credential forms are accepted: a signed JWT (auth cookie for the web
app, `Authorization: Bearer` for API clients) and the legacy static
`X-API-Key` allow-list. Each validator returns an AuthResult instead of
raising; the FastAPI dependencies at the bottom turn failures into ApiError.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request, Response

import config
import database
from errors import (
    ADMIN_REQUIRED,
    INVALID_API_KEY,
    INVALID_CONTENT_TYPE,
    INVALID_TOKEN,
    MISSING_API_KEY,
    MISSING_AUTH,
    MISSING_CONTENT_TYPE,
    ApiError,
)

logger = logging.getLogger(__name__)

BODY_METHODS = ("POST", "PUT", "PATCH")


@dataclass
class AuthFailure:
    code: str
    message: str
    status_code: int = 401


@dataclass
class AuthResult:
    success: bool
    user: Optional[dict] = None
    error: Optional[AuthFailure] = None

    @classmethod
    def ok(cls, user: Optional[dict] = None) -> "AuthResult":
        return cls(success=True, user=user)

    @classmethod
    def fail(cls, code: str, message: str, status_code: int = 401) -> "AuthResult":
        return cls(success=False, error=AuthFailure(code, message, status_code))


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode(), salt).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


def public_user(user_doc: dict) -> dict:
    created = user_doc.get("created_at")
    updated = user_doc.get("updated_at")
    return {
        "id": str(user_doc["_id"]),
        "name": user_doc["name"],
        "email": user_doc["email"],
        "role": user_doc.get("role", "USER"),
        "createdAt": created.isoformat() if created else None,
        "updatedAt": updated.isoformat() if updated else None,
    }


def create_token(user_doc: dict) -> str:
    payload = {
        "sub": str(user_doc["_id"]),
        "email": user_doc["email"],
        "role": user_doc.get("role", "USER"),
        "exp": datetime.now(timezone.utc) + timedelta(days=config.TOKEN_TTL_DAYS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGO)


def verify_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGO])
    except jwt.InvalidTokenError:
        return None
    if not payload.get("sub"):
        return None
    return payload


def user_from_token(token: Optional[str]) -> Optional[dict]:
    if not token:
        return None
    payload = verify_token(token)
    if payload is None:
        return None
    return database.find_by_id("user", payload["sub"])


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        config.AUTH_COOKIE_NAME,
        token,
        max_age=config.AUTH_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=config.COOKIE_SECURE,
        path="/",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(config.AUTH_COOKIE_NAME, path="/")


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization")
    if header and header.startswith("Bearer "):
        return header[len("Bearer "):].strip()
    return None


# Validators
def validate_jwt_auth(request: Request) -> AuthResult:
    user = user_from_token(request.cookies.get(config.AUTH_COOKIE_NAME))
    if user:
        return AuthResult.ok(user)

    token = bearer_token(request)
    if token:
        payload = verify_token(token)
        if payload is None:
            return AuthResult.fail(INVALID_TOKEN, "Invalid or expired token.")
        user = database.find_by_id("user", payload["sub"])
        if user:
            return AuthResult.ok(user)

    return AuthResult.fail(
        MISSING_AUTH,
        "Authentication required. Please login or provide Authorization header with Bearer token.",
    )


def validate_api_key(request: Request) -> AuthResult:
    api_key = request.headers.get("X-API-Key")
    if not api_key:
        return AuthResult.fail(
            MISSING_API_KEY,
            "API-Key header is required. Please include X-API-Key header with a valid API key.",
        )
    if api_key not in config.LEGACY_API_KEYS:
        return AuthResult.fail(
            INVALID_API_KEY,
            "Invalid API key provided. Please check your X-API-Key header value.",
        )
    return AuthResult.ok()


def validate_content_type(request: Request) -> AuthResult:
    if request.method not in BODY_METHODS:
        return AuthResult.ok()
    content_type = request.headers.get("Content-Type")
    if not content_type:
        return AuthResult.fail(
            MISSING_CONTENT_TYPE,
            "Content-Type header is required for this request. Please set Content-Type to application/json.",
            400,
        )
    if "application/json" not in content_type:
        return AuthResult.fail(
            INVALID_CONTENT_TYPE,
            "Invalid Content-Type. This endpoint only accepts application/json.",
            415,
        )
    return AuthResult.ok()


def validate_request(request: Request) -> AuthResult:
    """JWT first, then the legacy API key; the JWT error wins when both fail."""
    jwt_result = validate_jwt_auth(request)
    if jwt_result.success:
        return jwt_result

    key_result = validate_api_key(request)
    if key_result.success:
        content_result = validate_content_type(request)
        if not content_result.success:
            return content_result
        return key_result

    return jwt_result


def raise_for(result: AuthResult) -> None:
    if not result.success:
        err = result.error
        raise ApiError(err.status_code, err.code, err.message)


# Dependencies
def require_request_auth(request: Request) -> AuthResult:
    result = validate_request(request)
    raise_for(result)
    return result


def require_user(result: AuthResult = Depends(require_request_auth)) -> dict:
    if result.user is None:
        raise ApiError(401, MISSING_AUTH, "Authentication required")
    return result.user


def require_session_user(request: Request) -> dict:
    result = validate_jwt_auth(request)
    raise_for(result)
    return result.user


def require_admin(request: Request, result: AuthResult = Depends(require_request_auth)) -> dict:
    user = result.user
    if not user or user.get("role") != "ADMIN":
        logger.warning("Admin access denied on %s %s", request.method, request.url.path)
        raise ApiError(403, ADMIN_REQUIRED, "Admin access required")
    return user


def is_admin(user: dict) -> bool:
    return user.get("role") == "ADMIN"
