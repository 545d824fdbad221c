# ==================================================================================
# core/config.py: settings (database, JWT, payment provider) via pydantic-settings
# ==================================================================================
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import ValidationError
import sys


class Settings(BaseSettings):
    # ------------------------
    # DATABASE CONFIG
    # ------------------------
    DATABASE_URL: str = "sqlite:///./boardflow.db"

    # ------------------------
    # SECURITY CONFIG
    # ------------------------
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # -----------------------------------------
    # FRONTEND CONFIG (local dev default)
    # -----------------------------------------
    FRONTEND_URL: str = "http://localhost:5173"

    # ------------------------
    # STRIPE / PAYMENT CONFIG
    # ------------------------
    STRIPE_SECRET_KEY: str | None = None
    PAYMENT_CURRENCY: str = "eur"
    PAYMENT_PROVIDER_TIMEOUT_SECONDS: int = 10
    YEARLY_DISCOUNT: float = 0.9

    @property
    def STRIPE_SUCCESS_URL(self) -> str:
        """Checkout success URL; the subscription id is appended per session."""
        return f"{self.FRONTEND_URL}/payment/success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def STRIPE_CANCEL_URL(self) -> str:
        return f"{self.FRONTEND_URL}/subscription-plans"

    @property
    def PAYMENT_PROVIDER_CONFIGURED(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY)

    # ------------------------
    # ENVIRONMENT SETTINGS
    # ------------------------
    ENVIRONMENT: str = "development"  # 'development' | 'production'
    DEBUG: bool = True

    @property
    def IS_PRODUCTION(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    # ------------------------
    # Pydantic v2 Settings
    # ------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# ------------------------
# Global Settings Loader
# ------------------------
try:
    settings = Settings()
except ValidationError as e:
    print("❌ Environment configuration error, missing or invalid settings!")
    print(e)
    sys.exit(1)
