# backend/festdesk/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/festdesk.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///festdesk.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Transactional email (Brevo HTTP API)
    BREVO_API_KEY = os.environ.get("BREVO_API_KEY", "")
    BREVO_API_URL = os.environ.get("BREVO_API_URL", "https://api.brevo.com/v3")
    EMAIL_SENDER_NAME = os.environ.get("EMAIL_SENDER_NAME", "JIPMER STUDENT ASSOCIATION")
    EMAIL_SENDER_ADDRESS = os.environ.get("EMAIL_SENDER_ADDRESS", "jsa@jipmerspandan.in")
    EMAIL_TIMEOUT_SECONDS = float(os.environ.get("EMAIL_TIMEOUT_SECONDS", "10"))
    NOTIFY_ON_REJECT = _env_bool("NOTIFY_ON_REJECT", False)

    # UPI payment reference
    UPI_ID = os.environ.get("UPI_ID", "spandan2025@paytm")
    UPI_MERCHANT_NAME = os.environ.get("UPI_MERCHANT_NAME", "SPANDAN 2025")
    UPI_MERCHANT_CODE = os.environ.get("UPI_MERCHANT_CODE", "SPANDAN2025")
    UPI_CURRENCY = "INR"

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    }
