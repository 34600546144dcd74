"""Configuration for scopedroles stores and logging."""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class RolesConfig(BaseModel):
    """Configuration model for scopedroles.

    Attributes:
        store_type: Registered store type used by :func:`get_store`
        mongodb_uri: MongoDB connection URI
        mongodb_db_name: MongoDB database name
        collection: Collection holding principal records
        log_level: Level for the ``scopedroles`` logger
    """

    store_type: str = "memory"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "scopedroles"
    collection: str = "users"
    log_level: str = "WARNING"

    # Connection tuning passed through to AsyncIOMotorClient
    max_pool_size: int = Field(default=10, ge=1)
    server_selection_timeout_ms: Optional[int] = Field(default=None, ge=0)

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("collection")
    @classmethod
    def validate_collection(cls, value: str) -> str:
        if not value or not value.replace("_", "").isalnum():
            raise ValueError(f"Invalid collection name: {value}")
        return value

    @classmethod
    def from_env(cls, **overrides) -> "RolesConfig":
        """Build a configuration from environment variables.

        Environment Variables:
            SCOPEDROLES_STORE_TYPE: Store type (default: "memory")
            SCOPEDROLES_MONGODB_URI: MongoDB URI (default: "mongodb://localhost:27017")
            SCOPEDROLES_MONGODB_DB_NAME: MongoDB database (default: "scopedroles")
            SCOPEDROLES_COLLECTION: Principal collection (default: "users")
            SCOPEDROLES_LOG_LEVEL: Log level (default: "WARNING")

        Args:
            **overrides: Values taking precedence over the environment
        """
        values = {
            "store_type": os.getenv("SCOPEDROLES_STORE_TYPE", "memory"),
            "mongodb_uri": os.getenv(
                "SCOPEDROLES_MONGODB_URI", "mongodb://localhost:27017"
            ),
            "mongodb_db_name": os.getenv("SCOPEDROLES_MONGODB_DB_NAME", "scopedroles"),
            "collection": os.getenv("SCOPEDROLES_COLLECTION", "users"),
            "log_level": os.getenv("SCOPEDROLES_LOG_LEVEL", "WARNING"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


__all__ = ["RolesConfig"]
