# === backend/app/core/config.py ===
import os
from typing import List
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "")
    JWT_ALGORITHM: str = "HS256"
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    # dynamic endpoints are served beneath this prefix
    DYNAMIC_PREFIX: str = "/api/b"
    RESERVED_PATH_PREFIXES: List[str] = ["auth"]
    RESERVED_TABLE_PREFIXES: List[str] = ["sys"]

    SLOW_REQUEST_SECONDS: float = 5.0

    class Config:
        env_file = ".env"

settings = Settings()
