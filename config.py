from pydantic_settings import BaseSettings, SettingsConfigDict


class ENV(BaseSettings):
    model_config = SettingsConfigDict(validate_default=True, env_file=".env", env_file_encoding="utf-8")

    DEBUG: bool = False

    POSTGRES_HOST: str
    POSTGRES_PORT: str
    POSTGRES_NAME: str
    POSTGRES_USER: str
    POSTGRES_PASS: str

    redis_url: str
    CELERY_BROKER_URL: str
    CELERY_RESULT_BACKEND: str
    CELERY_TIMEZONE: str = "UTC"

    service_api_token: str

    XENDIT_API_KEY: str
    XENDIT_PAYOUTS_URL: str = "https://api.xendit.co/v2/payouts"
    XENDIT_CALLBACK_TOKEN: str
    PAYOUT_CURRENCY: str = "IDR"
    PAYOUT_TIMEOUT_SECONDS: float = 15.0

    # Fernet key (urlsafe base64, 32 bytes)
    ENCRYPTION_KEY: str

    DEFAULT_MEMBER_SHARE_PERCENT: int = 80
    WITHDRAWAL_LOCK_TIMEOUT_SECONDS: float = 30.0
    WITHDRAWAL_LOCK_WAIT_SECONDS: float = 5.0


class Settings():
    def __init__(self):
        self.env = ENV()

    def generate_postgres_url(self) -> str:
        return f"postgresql+asyncpg://{self.env.POSTGRES_USER}:{self.env.POSTGRES_PASS}@{self.env.POSTGRES_HOST}:{self.env.POSTGRES_PORT}/{self.env.POSTGRES_NAME}"
