"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Fitglide Cycles"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Strapi (remote period storage) ---
    strapi_base_url: str = "http://localhost:1337"
    strapi_api_token: str = ""
    request_timeout_seconds: float = 10.0

    # --- Cycle engine ---
    cycle_config_path: str | None = None  # override for the bundled cycle_config.yaml

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
