from pydantic_settings import BaseSettings
from typing import List, Literal


class Settings(BaseSettings):
    # ─── Application ───────────────────────────────────────────────────────────
    APP_NAME: str = "Vault01 Download Portal"
    APP_ENV:  str = "development"
    APP_HOST:  str = "0.0.0.0"
    APP_PORT:  int = 8000

    # ─── Database ──────────────────────────────────────────────────────────────
    DATABASE_URL:          str
    DATABASE_POOL_SIZE:    int  = 10
    DATABASE_MAX_OVERFLOW: int  = 20
    DATABASE_POOL_TIMEOUT: int  = 30
    DATABASE_ECHO:         bool = False
    DATABASE_AUTO_CREATE:  bool = True

    # ─── JWT ───────────────────────────────────────────────────────────────────
    SECRET_KEY:                    str
    ALGORITHM:                     str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES:   int = 60
    AUTH_COOKIE_NAME:              str = "auth_token"

    # ─── OTP ───────────────────────────────────────────────────────────────────
    OTP_EXPIRE_MINUTES:  int = 10
    OTP_LENGTH:          int = 6
    PASSWORD_MIN_LENGTH: int = 6

    # ─── Downloads ─────────────────────────────────────────────────────────────
    UPLOAD_DIR:                    str = "uploads"
    DAILY_DOWNLOAD_LIMIT:          int = 5
    DOWNLOAD_TOKEN_EXPIRE_MINUTES: int = 60
    DOWNLOAD_TRANSFER_TIMEOUT_MINUTES: int = 30
    STORE_SWEEP_INTERVAL_SECONDS:  int = 300
    DOWNLOAD_QUOTA_WINDOW:         Literal["calendar_day", "rolling_24h"] = "calendar_day"
    DOWNLOAD_QUOTA_FAIL_OPEN:      bool = True

    # ─── CORS ──────────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    def get_cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}


settings = Settings()
