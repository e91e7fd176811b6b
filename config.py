import logging
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Known placeholder values for SECRET_KEY
INSECURE_SECRET_KEYS = {
    "secret",
    "changeme",
    "jwt_secret",
    "supersecretjwtkeychangeit",
    "your-super-secret-jwt-key-change-this-in-production",
}


class Settings(BaseSettings):
    """
    Application settings loaded from environment / .env.
    Built once in create_app() and handed to every component that needs it.
    """
    model_config = SettingsConfigDict(
        # Use absolute path to make sure .env is found
        env_file=os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATABASE_URL: str = ""
    SECRET_KEY: str = "changeme"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 7 * 24 * 3600  # 7 days

    # Password reset
    RESET_TOKEN_BYTES: int = 32  # 256 bits of entropy
    RESET_TOKEN_EXPIRY_SECONDS: int = 3600  # 1 hour
    RESET_TOKEN_SWEEP_MINUTES: int = 60
    PASSWORD_MIN_LENGTH: int = 6
    BCRYPT_ROUNDS: int = 12

    # Checkout
    DELIVERY_CHARGE: float = 0.0  # Free delivery

    # Email (SMTP)
    EMAIL_HOST: str = "smtp.gmail.com"
    EMAIL_PORT: int = 587
    EMAIL_USER: str = ""
    EMAIL_PASSWORD: str = ""
    EMAIL_FROM: str = "MedStore <noreply@medstore.com>"
    FRONTEND_URL: str = "http://localhost:5173"

    ALLOWED_ORIGINS: str = "*"
    ENVIRONMENT: str = "development"
    RUN_MIGRATIONS: bool = True
    ENABLE_SCHEDULER: bool = True

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def email_enabled(self) -> bool:
        return bool(self.EMAIL_USER and self.EMAIL_PASSWORD)

    @property
    def allowed_origins(self) -> list:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


def validate_settings(settings: Settings) -> None:
    """
    Validate settings at startup.
    Refuses to start in production with an insecure SECRET_KEY, warns otherwise.
    """
    secret = settings.SECRET_KEY or ""
    if secret.lower() in INSECURE_SECRET_KEYS or len(secret) < 32:
        if settings.is_production:
            raise ValueError("Refusing to start in production with an insecure SECRET_KEY")
        logger.warning(
            "SECRET_KEY is an insecure placeholder. All sessions can be forged with it. "
            "Generate a strong secret before any deployment."
        )

    if not settings.DATABASE_URL:
        logger.warning("DATABASE_URL not set - using local SQLite database")

    if not settings.email_enabled:
        logger.warning("Email service not configured - transactional emails will be skipped")
