from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Research Hub"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DATABASE_URL: str = "sqlite:///./data/researchhub.db"
    LOG_LEVEL: str = "INFO"

    # Auth Config
    JWT_SECRET: str = Field(min_length=16)
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_DAYS: int = 7
    JWT_REMEMBER_DAYS: int = 30
    RESET_TOKEN_EXPIRE_MINUTES: int = 60
    ENABLE_EMAIL_VERIFICATION: bool = False

    # Security
    BCRYPT_ROUNDS: int = 12
    ADMIN_EMAILS: str = ""  # comma-separated
    AUTH_RATE_LIMIT_MAX_ATTEMPTS: int = 5
    AUTH_RATE_LIMIT_WINDOW_MS: int = 15 * 60 * 1000
    API_RATE_LIMIT_MAX_REQUESTS: int = 100
    API_RATE_LIMIT_WINDOW_MS: int = 15 * 60 * 1000

    # Email
    FRONTEND_URL: str = "http://localhost:3000"
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_STARTTLS: bool = True  # ignored on port 465, which is implicit TLS
    EMAIL_FROM: str | None = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def admin_emails(self) -> list[str]:
        return [e.strip().lower() for e in self.ADMIN_EMAILS.split(",") if e.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

settings = Settings()
