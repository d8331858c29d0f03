"""
# Configuration Module

Centralized settings for the Pulse admin content & access service.

Values are resolved by `pydantic-settings` in this order:

- **Environment variables** (highest precedence)
- **Config file**: `PULSE_ADMIN_CONFIG_PATH`, then `.pulse`, then `.env` at the project root
- **Defaults** declared on `Settings`

## Usage

```python
from pulse_admin.config import settings

collection = settings.REFLECTIONS_COLLECTION
```
"""

import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
PULSE_FILENAME: str = ".pulse"
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "PULSE_ADMIN_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent


# --- Config file discovery (no logging) ---
def get_config_path() -> Optional[str]:
    """
    Determines the configuration file path based on a predefined precedence order.

    1.  **Environment Variable**: `PULSE_ADMIN_CONFIG_PATH` (if set and file exists).
    2.  **Pulse Config**: `.pulse` file in the project root directory.
    3.  **Dotenv Config**: `.env` file in the project root directory.
    4.  **Fallback**: `None`, environment variables only.

    Returns:
        Optional[str]: The absolute path to the configuration file, or `None` if not found.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    pulse_path: Path = PROJECT_ROOT / PULSE_FILENAME
    if pulse_path.exists():
        return str(pulse_path)
    env_path_file: Path = PROJECT_ROOT / DEFAULT_ENV_FILENAME
    if env_path_file.exists():
        return str(env_path_file)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=True)


class Settings(BaseSettings):
    """
    Application configuration settings model.

    **Configuration Groups:**
    *   **Server**: Host, port, debug mode, log level.
    *   **Database**: MongoDB connection details.
    *   **Redis**: Persisted cache store for the challenge list.
    *   **Collections**: Names of the top-level document containers.
    *   **Limits**: Listing and search caps.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Server configuration
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # MongoDB configuration
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "pulse_admin"
    MONGODB_CONNECTION_TIMEOUT: int = 10000
    MONGODB_SERVER_SELECTION_TIMEOUT: int = 5000

    # Authentication (optional)
    MONGODB_USERNAME: Optional[str] = None
    MONGODB_PASSWORD: Optional[SecretStr] = None

    # Redis configuration
    REDIS_URL: str = "redis://127.0.0.1:6379/0"

    # Top-level containers
    REFLECTIONS_COLLECTION: str = "reflections"
    ACCESS_REQUESTS_COLLECTION: str = "programming-access"
    CHALLENGES_COLLECTION: str = "sweatlist-collection"

    # Reflections
    REFLECTION_LIST_DEFAULT_LIMIT: int = 30

    # Challenge cache
    CHALLENGE_CACHE_KEY: str = "adminAllChallengesCache"
    CHALLENGE_CACHE_TTL_SECONDS: int = 0  # 0 keeps the blob until the next refresh
    CHALLENGE_SEARCH_LIMIT: int = 10

    @field_validator("MONGODB_URL", "REDIS_URL", mode="before")
    @classmethod
    def no_empty_urls(cls, v: Any, info: Any) -> Any:
        """
        Validates that connection URLs are not empty.

        Raises:
            ValueError: If the URL is empty or whitespace.
        """
        if not v or not str(v).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .pulse and not empty!")
        return v

    @field_validator("REFLECTION_LIST_DEFAULT_LIMIT", "CHALLENGE_SEARCH_LIMIT", mode="before")
    @classmethod
    def validate_positive_integers(cls, v: Any, info: Any) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer")
        return value

    @field_validator("CHALLENGE_CACHE_TTL_SECONDS", mode="before")
    @classmethod
    def validate_ttl(cls, v: Any) -> int:
        ttl = int(v)
        if ttl < 0:
            raise ValueError("CHALLENGE_CACHE_TTL_SECONDS must be zero or positive")
        return ttl

    @property
    def is_production(self) -> bool:
        """Production mode is `DEBUG=False`."""
        return not self.DEBUG


# Global settings instance
settings: Settings = Settings()
