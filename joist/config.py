from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "WARNING"
    LOG_JSON: bool = False  # True for JSON lines, False for console output

    # Process-wide default preferences
    ABORT_EARLY: bool = True
    CONVERT: bool = True
    ALLOW_UNKNOWN: bool = False
    PRESENCE: Literal["optional", "required", "forbidden"] = "optional"

    model_config = SettingsConfigDict(env_prefix="JOIST_", env_file=".env", extra="ignore")

    def default_preferences(self) -> dict:
        return {
            "abort_early": self.ABORT_EARLY,
            "convert": self.CONVERT,
            "allow_unknown": self.ALLOW_UNKNOWN,
            "presence": self.PRESENCE,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()
