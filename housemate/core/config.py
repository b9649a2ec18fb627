from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # API Settings
    PROJECT_NAME: str = "Housemate Ledger API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Shared household bill splitting and settlement ledger"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Record store: "mongo" or "memory"
    STORE_BACKEND: str = "mongo"

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "housemate"
    # Multi-document transactions around settle/restore; needs a replica set
    MONGO_TRANSACTIONS: bool = False

    # Collections
    BILLS_COLLECTION: str = "bills"
    SETTLEMENTS_COLLECTION: str = "archived_bills"
    MEMBERS_COLLECTION: str = "profiles"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # JWT
    JWT_SECRET: str = "change-this-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 60 * 24

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
