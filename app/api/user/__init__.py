from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr

from app.models.user import User
from app.services import auth_flow, oauth
from app.services.auth import (
    clear_session_cookie,
    get_current_user,
    get_notifier,
    get_settings,
    get_token_service,
    set_session_cookie,
)
from app.services.notifier import EmailNotifier
from app.services.rate_limit import limit_route
from app.services.token import TokenService
from app.utils.config import Settings, settings as app_settings


router = APIRouter()

auth_rate_limit = Depends(limit_route(app_settings.auth_rate_limit_seconds))


def _session_response(response: Response, user: User, token: str, settings: Settings) -> dict:
    set_session_cookie(response, token, settings)
    return {"status": "success", "data": {"user": user.to_output()}}


class SignupBody(BaseModel):
    name: str
    email: EmailStr
    role: str = "student"
    password: str
    password_confirm: str

@router.post("/signup", status_code=201)
def signup(
    body: SignupBody,
    notifier: EmailNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> dict:
    """PUBLIC: Create an unverified account and email its OTP; no session yet."""
    auth_flow.signup(
        notifier,
        settings,
        name=body.name,
        email=body.email,
        role=body.role,
        password=body.password,
        password_confirm=body.password_confirm,
    )
    return {"status": "success", "message": "User created. Please verify your email."}


class VerifyBody(BaseModel):
    email: EmailStr
    otp: str

@router.post("/verify", dependencies=[auth_rate_limit])
def verify_email(
    body: VerifyBody,
    response: Response,
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> dict:
    """PUBLIC | RATE-LIMITED: Confirm the OTP and open a session."""
    user, token = auth_flow.verify_email(tokens, email=body.email, otp=body.otp)
    return _session_response(response, user, token, settings)


class LoginBody(BaseModel):
    email: str | None = None
    password: str | None = None

@router.post("/login", dependencies=[auth_rate_limit])
def login(
    body: LoginBody,
    response: Response,
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> dict:
    """PUBLIC | RATE-LIMITED: Exchange email and password for a session cookie."""
    user, token = auth_flow.login(tokens, email=body.email, password=body.password)
    return _session_response(response, user, token, settings)


@router.api_route("/logout", methods=["GET", "POST"])
def logout(
    response: Response,
    settings: Settings = Depends(get_settings),
) -> dict:
    """Clear the session cookie; safe to call with or without a session."""
    clear_session_cookie(response, settings)
    return {"status": "success", "data": None}


class ForgotPasswordBody(BaseModel):
    email: str | None = None

@router.post("/forgotPassword", dependencies=[auth_rate_limit])
def forgot_password(
    body: ForgotPasswordBody,
    notifier: EmailNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> dict:
    """PUBLIC | RATE-LIMITED: Email a password reset link."""
    auth_flow.forgot_password(notifier, settings, email=body.email)
    return {"status": "success", "message": "Token sent to email!"}


class ResetPasswordBody(BaseModel):
    password: str
    password_confirm: str

@router.patch("/resetPassword/{token}")
def reset_password(
    token: str,
    body: ResetPasswordBody,
    response: Response,
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> dict:
    """PUBLIC: Set a new password with an emailed reset token."""
    user, session = auth_flow.reset_password(
        tokens,
        token=token,
        password=body.password,
        password_confirm=body.password_confirm,
    )
    return _session_response(response, user, session, settings)


class UpdatePasswordBody(BaseModel):
    password_current: str
    password: str
    password_confirm: str

@router.patch("/updateMyPassword")
def update_password(
    body: UpdatePasswordBody,
    response: Response,
    current_user: User = Depends(get_current_user),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> dict:
    """PROTECTED: Change password; sessions issued earlier stop working."""
    user, token = auth_flow.update_password(
        tokens,
        current_user,
        password_current=body.password_current,
        password=body.password,
        password_confirm=body.password_confirm,
    )
    return _session_response(response, user, token, settings)


class OAuthBody(BaseModel):
    email: EmailStr
    name: str
    photo: str | None = None

@router.post("/oauth")
def oauth_login(
    body: OAuthBody,
    response: Response,
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> dict:
    """PUBLIC: Sign in (or sign up) with an identity asserted by an external provider."""
    user, token, created = oauth.find_or_create(tokens, email=body.email, name=body.name, photo=body.photo)
    if created:
        response.status_code = 201
    return _session_response(response, user, token, settings)


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Current user's profile."""
    return {"status": "success", "data": {"user": current_user.to_output()}}


@router.delete("/deleteMe", status_code=204)
def delete_me(
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> Response:
    """PROTECTED: Deactivate the current account and end its session."""
    auth_flow.deactivate(current_user)
    response = Response(status_code=204)
    clear_session_cookie(response, settings)
    return response
