"""Runtime settings, read from CREDADMIN_* environment variables or a .env file."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import crypto


class Settings(BaseSettings):
    """
    Settings for the credadmin CLI.

    Only the composition root (cli.py) reads these; the core classes take
    plain constructor arguments.
    """

    model_config = SettingsConfigDict(
        env_prefix="CREDADMIN_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    store_path: str = "account-info.json"
    store_load_errors: Literal["raise", "degrade"] = "raise"

    min_password_length: int = Field(default=8, ge=1)

    scrypt_n: int = Field(default=crypto.SCRYPT_N, gt=1)
    scrypt_r: int = Field(default=crypto.SCRYPT_R, ge=1)
    scrypt_p: int = Field(default=crypto.SCRYPT_P, ge=1)

    log_level: str = "WARNING"
    log_json: bool = False

    @field_validator("scrypt_n")
    @classmethod
    def scrypt_n_power_of_two(cls, value: int) -> int:
        # scrypt rejects any other cost at derivation time
        if value & (value - 1):
            raise ValueError("scrypt_n must be a power of two")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()
