# backend/stayledger/config.py
from __future__ import annotations

import os
import tempfile

from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_report_dir() -> str:
    return os.path.join(tempfile.gettempdir(), "stayledger-reports")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-18.v1"
    database_url: str = "sqlite:///./stayledger.db"
    company_name: str = "StayLedger"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth ----
    auth_mode: str = "dev"  # dev|jwt
    dev_auto_provision: bool = True
    dev_header_user_email: str = "X-User-Email"
    dev_header_user_role: str = "X-User-Role"
    dev_header_portfolio_id: str = "X-Portfolio-Id"

    jwt_secret: str = "dev-change-me"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days
    jwt_cookie_name: str = "stayledger_jwt"
    jwt_cookie_secure: int = 0
    jwt_cookie_samesite: str = "lax"
    invitation_ttl_hours: int = 24

    # ---- Inventory ----
    default_min_quantity: int = 10
    low_stock_floor: int = 5
    default_markup_percent: float = 15.0

    # ---- Reports ----
    # Every generated PDF and ZIP lives under this root.
    report_temp_dir: str = _default_report_dir()

    # ---- Email (SMTP) ----
    email_enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    from_email: str = "notifications@stayledger.local"

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")

            if self.jwt_secret == "dev-change-me":
                raise ValueError("SECURITY: jwt_secret must be set in prod")


settings = Settings()
