# core/config.py
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ────────────────────────────────
    # 1. APP & ENVIRONMENT
    # ────────────────────────────────
    PROJECT_NAME: str = "Marcha"
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=True)
    PORT: int = 3000
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # ────────────────────────────────
    # 2. MIDTRANS (payment gateway)
    # ────────────────────────────────
    MIDTRANS_SERVER_KEY: str = Field(..., description="Midtrans server key (basic auth + signatures)")
    MIDTRANS_CLIENT_KEY: str = Field(..., description="Midtrans client key for the Snap frontend")
    MIDTRANS_IS_PRODUCTION: bool = False
    MIDTRANS_TIMEOUT: float = 15.0
    MIDTRANS_VERIFY_SIGNATURE: bool = True
    ORDER_ID_PREFIX: str = "order-id-"

    # ────────────────────────────────
    # 3. FIREBASE / FIRESTORE
    # ────────────────────────────────
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = Field(
        default=None,
        description="Path to Firebase service account JSON"
    )
    MARCHA_FIREBASE_KEY: Optional[str] = Field(
        default=None,
        description="Base64-encoded Firebase service account JSON"
    )
    FIRESTORE_TIMEOUT: float = 10.0
    FIRESTORE_MAX_ATTEMPTS: int = 5

    ORDERS_COLLECTION: str = "orders"
    USERS_COLLECTION: str = "users"
    SETTLEMENTS_COLLECTION: str = "settlements"

    # ────────────────────────────────
    # 4. MOBILE APP
    # ────────────────────────────────
    START_APP_URL: str = "https://marchaa.vercel.app/"
    ASSET_LINKS_PATH: str = "assetlinks.json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
