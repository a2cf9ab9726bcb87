from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./library.db"
    DB_TIMEOUT_SECONDS: int = 5
    LOG_LEVEL: str = "INFO"
    SLOW_REQUEST_THRESHOLD_MS: int = 1000  # 1 second

    LOAN_PERIOD_DAYS: int = 14

    DEFAULT_OWNER_EMAIL: str = "default_owner@example.com"
    DEFAULT_OWNER_PASSWORD: str = "password"  # change it after first start
    DEFAULT_OWNER_NAME: str = "Root"
    DEFAULT_OWNER_CONTACT: str = "1234567890"
    DEFAULT_OWNER_LIB_ID: int = 1

    class Config:
        env_file = ".env"


settings = Settings()
