from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./mflix.db"

    # JWT
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 24 hours

    # CORS for the JSON API (env: JSON list, e.g. ["https://mflix.example"])
    cors_allow_origins: list[str] = ["*"]

    # Access-Control-Allow-Origin stamped on relayed video streams
    stream_allow_origin: str = "*"

    # Origin (CDN / object store) relay
    origin_connect_timeout_seconds: float = 10.0
    origin_headers_timeout_seconds: float = 15.0
    origin_verify_tls: bool = True
    stream_chunk_size: int = 64 * 1024  # 64 KB

    # Razorpay
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_api_url: str = "https://api.razorpay.com/v1"

    # Plan prices in the currency's minor unit (paise)
    payment_currency: str = "INR"
    plan_price_monthly: int = 1 * 100
    plan_price_yearly: int = 10 * 100

    # Dev/test: skip signature verification and allow mock activation
    skip_payment: bool = False

    # Account and subscription emails (disabled while smtp_host is empty)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_start_tls: bool = True
    mail_from_address: str = ""
    mail_from_name: str = "mflix"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
