"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Analysis settings pulled from HEXDOM_* environment variables."""

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="console", description="Log format (console or json)")

    # Closure and walking limits
    closure_step_factor: int = Field(
        default=4, ge=1,
        description="Domain closure gives up after this many steps per candidate vertex",
    )
    walk_step_factor: int = Field(
        default=2, ge=1,
        description="An edge walk gives up after this many full rotations per grid cell",
    )

    class Config:
        env_prefix = "HEXDOM_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
