from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "campus-events"
    environment: str = "local"
    debug: bool = False

    mongo_port: int = 27017
    mongo_host: str = "localhost"
    mongo_db: str = "campus_events"
    mongo_password: str | None = None
    mongo_params: str | None = None
    mongo_user: str | None = None

    jwt_algorithm: str = "HS256"
    jwt_secret_key: str = "very-secret-key"
    jwt_expires_in_days: int = 90
    jwt_cookie_expires_in_days: int = 90

    otp_expires_minutes: int = 10
    password_reset_expires_minutes: int = 10

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_timeout_seconds: float = 10.0
    mail_from: str = "CampusUnify <hello@campusunify.com>"
    frontend_url: str = "http://localhost:5173"

    redis_db: int = 0
    redis_port: int = 6379
    redis_host: str = "localhost"
    redis_password: str | None = None

    cache_ttl_seconds: int = 60
    auth_rate_limit_seconds: int = 1
    cors_origins: list[str] = ["http://localhost:5173"]

    model_config = SettingsConfigDict(env_file=(".env",), case_sensitive=False, extra="ignore")

    @property
    def mongo_uri(self) -> str:
        auth = ""
        if self.mongo_user and self.mongo_password:
            auth = f"{self.mongo_user}:{self.mongo_password}@"
        params = self.mongo_params or "retryWrites=true&w=majority"
        return f"mongodb+srv://{auth}{self.mongo_host}/{self.mongo_db}?{params}"

    @property
    def secure_cookies(self) -> bool:
        return self.environment == "production"

    @property
    def exposes_errors(self) -> bool:
        # Never in production, even with DEBUG left on
        return self.debug and self.environment != "production"


settings = Settings()
