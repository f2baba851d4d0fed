import logging
import secrets

from app.models.user import User
from app.services.auth import hash_password
from app.services.token import TokenService
from app.utils.base import UserRole
from app.utils.base.errors import Forbidden, ValidationError


logger = logging.getLogger("campus.auth.oauth")


def derive_display_name(name: str) -> str:
    """Collapse the provider name and add a short random suffix, e.g. "janedoe3f9a"."""
    base = "".join((name or "").split()).lower() or "user"
    return f"{base}{secrets.token_hex(2)}"


def find_or_create(tokens: TokenService, *, email: str, name: str, photo: str | None = None) -> tuple[User, str, bool]:
    """Resolve an external identity to a local account and open a session.

    The identity provider has already confirmed control of the email, so an
    existing unverified account is marked verified here rather than refused.
    New accounts get a random password nobody is told; they sign in through
    the provider from then on.

    Returns (user, token, created).
    """
    if not email:
        raise ValidationError("Please provide an email")
    email = User.normalize_email(email)

    user: User | None = User.objects(email=email).first()
    if user:
        if not user.active:
            raise Forbidden("This account has been deactivated")
        if not user.is_verified:
            user.is_verified = True
            user.clear_otp()
            user.save()
        return user, tokens.issue(str(user.id)), False

    user = User(
        name=derive_display_name(name),
        email=email,
        role=UserRole.STUDENT.value,
        password=hash_password(secrets.token_urlsafe(24)),
        avatar=photo,
        is_verified=True,
    )
    user.save()
    logger.info("Created account %s from external identity", user.id)
    return user, tokens.issue(str(user.id)), True
