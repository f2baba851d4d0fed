"""Application error taxonomy.

Every error carries the HTTP status it maps to; `main.py` translates them into
the `{"status": "fail"|"error", "message": ...}` envelope.
"""


def envelope_status(status_code: int) -> str:
    return "fail" if status_code < 500 else "error"


class AppError(Exception):
    status_code: int = 500
    message: str = "Something went wrong"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def status(self) -> str:
        return envelope_status(self.status_code)


class ValidationError(AppError):
    status_code = 400
    message = "Invalid input data"


class NotAuthenticated(AppError):
    status_code = 401
    message = "User is not logged in"


class InvalidToken(NotAuthenticated):
    message = "Invalid or expired session token"


class InvalidCredentials(NotAuthenticated):
    message = "Incorrect email or password entered"


class StalePasswordToken(NotAuthenticated):
    message = "Password was changed. Login again"


class WrongCurrentPassword(AppError):
    status_code = 401
    message = "You have entered the wrong current password"


class Forbidden(AppError):
    status_code = 403
    message = "You do not have permission to perform this action"


class NotFound(AppError):
    status_code = 404
    message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    message = "Resource already exists"


class InvalidOrExpiredOtp(AppError):
    status_code = 400
    message = "Invalid or expired OTP"


class InvalidOrExpiredToken(AppError):
    status_code = 400
    message = "Token is invalid or expired"


class EmailDeliveryError(AppError):
    status_code = 500
    message = "There was an error while sending email. Try again later"


class RateLimited(AppError):
    status_code = 429
    message = "Too many requests"
