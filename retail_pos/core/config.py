# retail_pos/core/config.py

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    BCRYPT_ROUNDS: int = 12

    # Database
    DATABASE_URL: str

    # HTTP
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    RATE_LIMIT_ENABLED: bool = True

    # Setup / bootstrap
    INTERNAL_ADMIN_SECRET: str
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_EMAIL: str = "admin@store.com"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"

    # Checkout
    VERIFY_DECLARED_PRICES: bool = True
    PRICE_TOLERANCE: Decimal = Decimal("0.01")

    # Analytics
    LOW_STOCK_THRESHOLD: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",
    )


settings = Settings()
