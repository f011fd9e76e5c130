"""Configuration settings for the Camel Health Union server."""

from functools import lru_cache
from typing import List, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Collection names
USERS_COLLECTION = "users"
HEART_RATES_COLLECTION = "heartrates"

# Required fields per collection
REQUIRED_USER_FIELDS: Tuple[str, ...] = (
    "username",
    "password",
    "clientId",
    "fitbitAccessToken",
    "age",
    "gender",
    "height",
    "weight",
    "memberSince",
    "averageDailySteps",
)
REQUIRED_HEART_RATE_FIELDS: Tuple[str, ...] = ("userId", "rate", "timestamp")

# User identity and the fields overwritten when an existing user posts again
USER_IDENTITY_FIELDS: Tuple[str, ...] = ("username", "password")
USER_PROFILE_FIELDS: Tuple[str, ...] = (
    "age",
    "gender",
    "height",
    "weight",
    "memberSince",
    "averageDailySteps",
    "fitbitAccessToken",
    "clientId",
)

WELCOME_MESSAGE = "Welcome to the Camel Health Union server"


class Settings(BaseSettings):
    """Runtime settings read from the environment or a .env file."""

    connection_string: Optional[str] = Field(None, description="MongoDB connection string")
    database_name: str = Field("CHU_database", description="Database holding the collections")
    host: str = Field("0.0.0.0", description="Interface the HTTP server binds to")
    port: int = Field(3000, description="HTTP port")
    log_level: str = Field("INFO", description="Root logging level")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    root_document_limit: Optional[int] = Field(
        None, ge=1, description="Max documents per collection returned by GET /"
    )
    server_selection_timeout_ms: int = Field(5000, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
