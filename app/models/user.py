import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from mongoengine import BooleanField, DateTimeField, EmailField, StringField

from app.models.base import BaseDocument, as_utc
from app.utils.base import UserRole


def hash_reset_token(token: str) -> str:
    """sha256 hex digest; only this form of a reset token is ever stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class User(BaseDocument):
    """User document.

    Fields:
    - name (str): Display name
    - email (str, unique): Login identifier, stored lower-cased
    - role (str): student/club/admin
    - password (str, hashed): Bcrypt-hashed password, never serialized
    - password_changed_at (datetime|None): tokens issued before this are stale
    - is_verified (bool), otp (str|None), otp_expires (datetime|None): email OTP
    - password_reset_token (str|None): sha256 of the emailed token
    - password_reset_expires (datetime|None)
    - active (bool): soft-delete marker
    """
    name = StringField(required=True, null=False)
    email = EmailField(required=True, null=False, unique=True)
    role = StringField(required=True, null=False, choices=UserRole.choices(), default=UserRole.STUDENT.value)
    avatar = StringField(required=False, null=True)

    password = StringField(required=True, null=False)
    password_changed_at = DateTimeField(required=False, null=True)

    is_verified = BooleanField(required=True, null=False, default=False)
    otp = StringField(required=False, null=True)
    otp_expires = DateTimeField(required=False, null=True)

    password_reset_token = StringField(required=False, null=True)
    password_reset_expires = DateTimeField(required=False, null=True)

    active = BooleanField(required=True, null=False, default=True)

    private_fields = (
        "password",
        "otp",
        "otp_expires",
        "password_reset_token",
        "password_reset_expires",
        "active",
        "metadata",
    )

    meta = {
        "collection": "users",
        "indexes": [
            {"fields": ["email"], "unique": True},
            {"fields": ["password_reset_token"]},
        ],
    }

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    def mark_password_changed(self) -> None:
        # Backdated a second so a token issued right after the change stays fresh
        self.password_changed_at = datetime.now(timezone.utc) - timedelta(seconds=1)

    def changed_password_after(self, issued_at: datetime) -> bool:
        """True when the password changed after a token was issued at `issued_at`.

        Both sides are truncated to whole seconds and the stamp is backdated one
        second, so a token issued within about two seconds before the change
        still passes.
        """
        if not self.password_changed_at:
            return False
        changed_ts = int(as_utc(self.password_changed_at).timestamp())
        return changed_ts > int(issued_at.timestamp())

    def issue_otp(self, ttl: timedelta) -> str:
        self.otp = f"{secrets.randbelow(10 ** 6):06d}"
        self.otp_expires = datetime.now(timezone.utc) + ttl
        return self.otp

    def otp_is_live(self, otp: str) -> bool:
        if not self.otp or not self.otp_expires:
            return False
        if not secrets.compare_digest(self.otp, otp):
            return False
        return as_utc(self.otp_expires) > datetime.now(timezone.utc)

    def clear_otp(self) -> None:
        self.otp = None
        self.otp_expires = None

    def create_password_reset_token(self, ttl: timedelta) -> str:
        """Store the hash of a fresh reset token and return the plaintext."""
        token = secrets.token_hex(32)
        self.password_reset_token = hash_reset_token(token)
        self.password_reset_expires = datetime.now(timezone.utc) + ttl
        return token

    def reset_token_is_live(self) -> bool:
        if not self.password_reset_token or not self.password_reset_expires:
            return False
        return as_utc(self.password_reset_expires) > datetime.now(timezone.utc)

    def clear_password_reset(self) -> None:
        self.password_reset_token = None
        self.password_reset_expires = None
