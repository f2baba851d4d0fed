"""Password hashing, session cookies and the per-request authorization guard.

`authenticate_request` is the single identity resolution path:
  1. token from the `jwt` cookie, else an `Authorization: Bearer` header
  2. signature/expiry check through the app's TokenService
  3. active user lookup
  4. freshness check against the user's last password change

`get_current_user` enforces it; `try_get_current_user` degrades every
authentication failure to None and must never guard a protected route.
"""
from typing import Any, Callable

from fastapi import Depends, Request, Response
from passlib.context import CryptContext

from app.models.base import plain_id
from app.models.user import User
from app.services.notifier import EmailNotifier
from app.services.token import TokenService
from app.utils.base.errors import Forbidden, NotAuthenticated, StalePasswordToken
from app.utils.config import Settings


SESSION_COOKIE = "jwt"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain: str, hashed: str) -> bool:
    """Verify plaintext password against a bcrypt hash."""
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        return False


def hash_password(plain: str) -> str:
    """Hash a plaintext password using bcrypt."""
    return pwd_context.hash(plain)


# Checked against when the account is missing so both failure paths cost one bcrypt round
DUMMY_HASH = hash_password("campus-timing-dummy")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_notifier(request: Request) -> EmailNotifier:
    return request.app.state.notifier


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    """Write the session token as an httpOnly cookie."""
    response.set_cookie(
        SESSION_COOKIE,
        value=token,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="none" if settings.secure_cookies else "lax",
        max_age=settings.jwt_cookie_expires_in_days * 24 * 60 * 60,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        SESSION_COOKIE,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="none" if settings.secure_cookies else "lax",
    )


def extract_token(request: Request) -> str | None:
    token = request.cookies.get(SESSION_COOKIE)
    # Clients that "clear" the cookie by writing null send the literal string
    if token and token != "null":
        return token

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:] or None
    return None


def authenticate_request(request: Request) -> User:
    token = extract_token(request)
    if not token:
        raise NotAuthenticated()

    claims = get_token_service(request).verify(token)

    user: User | None = User.find_by_id(claims.subject_id)
    if not user or not user.active:
        raise NotAuthenticated("User does not exist")

    if user.changed_password_after(claims.issued_at):
        raise StalePasswordToken()
    return user


def get_current_user(request: Request) -> User:
    """Auth dependency that resolves the caller or raises 401."""
    return authenticate_request(request)


def try_get_current_user(request: Request) -> User | None:
    """Non-enforcing variant: the caller's identity if any, else None."""
    try:
        return authenticate_request(request)
    except NotAuthenticated:
        return None


def restrict_to(*roles: str) -> Callable[..., User]:
    """Return a dependency that admits only authenticated users with one of `roles`."""

    def _dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise Forbidden()
        return current_user

    return _dependency


def ensure_owner(user: User, owner: Any, message: str | None = None) -> None:
    """Raise Forbidden unless `user` is the owner referenced by `owner`.

    `owner` may be a populated document, a DBRef, an ObjectId or a plain id.
    """
    if str(user.id) != plain_id(owner):
        raise Forbidden(message or "You are unauthorized to perform this action")
