from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    PROJECT_NAME: str = "Bookshop Checkout API"
    DATABASE_URL: str = "sqlite:///./checkout.db"
    SQL_ECHO: bool = False

    # JWT bearer tokens, "sub" carries the user id
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 1 week

    # Payment simulator
    PAYMENT_DECLINE_RATE: float = Field(0.0, ge=0.0, le=1.0)
    PAYMENT_TIMEOUT_SECONDS: float = Field(10.0, gt=0)

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
