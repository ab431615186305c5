from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # API Settings
    PROJECT_NAME: str = "Piinty API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Track the pints your mates owe you"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Storage backend: "mongo" or "local"
    STORAGE_BACKEND: str = "mongo"
    LOCAL_STORE_PATH: str = "pint-tracker-data.json"
    # Re-fetch the group after every write, as the web client always did
    RELOAD_AFTER_WRITE: bool = True

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "piinty"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # JWT
    SECRET_KEY: str = "change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Photo uploads
    MAX_FILE_SIZE: int = 10485760
    UPLOAD_DIR: str = "uploads"
    PHOTO_URL_PREFIX: str = "/photos"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
