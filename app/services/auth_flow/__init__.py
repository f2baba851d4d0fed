"""Account lifecycle: signup -> OTP verification -> login, and password recovery.

    Unverified --verify_email--> Verified --forgot_password--> PasswordResetPending
    PasswordResetPending --reset_password--> Verified

The only rollback in the system lives here: a failed verification email deletes
the account it was sent for, and a failed reset email restores the previous
reset-token state.
"""
import logging
from datetime import timedelta

from app.models.user import User, hash_reset_token
from app.services.auth import DUMMY_HASH, hash_password, verify_password
from app.services.notifier import EmailNotifier
from app.services.token import TokenService
from app.utils.base import UserRole
from app.utils.base.errors import (
    Conflict,
    EmailDeliveryError,
    Forbidden,
    InvalidCredentials,
    InvalidOrExpiredOtp,
    InvalidOrExpiredToken,
    NotFound,
    ValidationError,
    WrongCurrentPassword,
)
from app.utils.config import Settings


logger = logging.getLogger("campus.auth")

MIN_PASSWORD_LENGTH = 8
SIGNUP_ROLES = (UserRole.STUDENT.value, UserRole.CLUB.value)


def check_new_password(password: str, password_confirm: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if password != password_confirm:
        raise ValidationError("Passwords are not the same")


def signup(
    notifier: EmailNotifier,
    settings: Settings,
    *,
    name: str,
    email: str,
    role: str,
    password: str,
    password_confirm: str,
) -> User:
    """Create (or restart) an unverified account and email its OTP.

    An unverified account already holding the email is reset in place, so
    there is never more than one account per email.
    """
    email = User.normalize_email(email)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Please tell us your name")
    if role not in SIGNUP_ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(SIGNUP_ROLES)}")
    check_new_password(password, password_confirm)

    existing: User | None = User.objects(email=email).first()
    if existing and existing.is_verified:
        raise Conflict("Email already in use")

    user = existing or User(email=email)
    user.name = name
    user.role = role
    user.password = hash_password(password)
    user.active = True
    otp = user.issue_otp(timedelta(minutes=settings.otp_expires_minutes))
    user.save()

    try:
        notifier.send_verification_otp(email, otp)
    except EmailDeliveryError:
        logger.warning("Verification email to %s failed, removing unverified account %s", email, user.id)
        user.delete()
        raise EmailDeliveryError("Error sending verification email. Please try again.")

    logger.info("Signed up %s (%s), awaiting verification", email, role)
    return user


def verify_email(tokens: TokenService, *, email: str, otp: str) -> tuple[User, str]:
    user: User | None = User.objects(email=User.normalize_email(email or ""), active=True).first()
    if not user or not user.otp_is_live(otp or ""):
        raise InvalidOrExpiredOtp()

    user.is_verified = True
    user.clear_otp()
    user.save()
    logger.info("Verified email for user %s", user.id)
    return user, tokens.issue(str(user.id))


def login(tokens: TokenService, *, email: str, password: str) -> tuple[User, str]:
    """Authenticate by email and password.

    Missing account, wrong password and deactivated account are the same
    InvalidCredentials error, and each path runs one bcrypt check.
    """
    if not email or not password:
        raise ValidationError("Please provide email and password")

    user: User | None = User.objects(email=User.normalize_email(email)).first()
    if not user:
        verify_password(password, DUMMY_HASH)
        raise InvalidCredentials()
    if not verify_password(password, user.password) or not user.active:
        raise InvalidCredentials()
    if not user.is_verified:
        raise Forbidden("Please verify your email before logging in")
    return user, tokens.issue(str(user.id))


def forgot_password(notifier: EmailNotifier, settings: Settings, *, email: str) -> None:
    if not email:
        raise ValidationError("Please enter an email address")

    user: User | None = User.objects(email=User.normalize_email(email), active=True).first()
    if not user:
        raise NotFound("No user with the specified email exists")

    previous = (user.password_reset_token, user.password_reset_expires)
    token = user.create_password_reset_token(timedelta(minutes=settings.password_reset_expires_minutes))
    user.save()

    try:
        notifier.send_password_reset(user.email, user.name, token)
    except EmailDeliveryError:
        user.password_reset_token, user.password_reset_expires = previous
        user.save()
        raise

    logger.info("Password reset requested for user %s", user.id)


def reset_password(tokens: TokenService, *, token: str, password: str, password_confirm: str) -> tuple[User, str]:
    user: User | None = User.objects(password_reset_token=hash_reset_token(token or "")).first()
    if not user or not user.active or not user.reset_token_is_live():
        raise InvalidOrExpiredToken()

    check_new_password(password, password_confirm)
    user.password = hash_password(password)
    user.mark_password_changed()
    user.clear_password_reset()
    user.save()

    logger.info("Password reset completed for user %s", user.id)
    return user, tokens.issue(str(user.id))


def update_password(
    tokens: TokenService,
    user: User,
    *,
    password_current: str,
    password: str,
    password_confirm: str,
) -> tuple[User, str]:
    """Change the password of an authenticated user and re-issue their session.

    Sessions issued before the change fail the freshness check afterwards.
    """
    if not verify_password(password_current or "", user.password):
        raise WrongCurrentPassword()

    check_new_password(password, password_confirm)
    user.password = hash_password(password)
    user.mark_password_changed()
    user.save()

    logger.info("Password updated for user %s", user.id)
    return user, tokens.issue(str(user.id))


def deactivate(user: User) -> None:
    user.active = False
    user.save()
    logger.info("Deactivated user %s", user.id)
