from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Nexus API"
    app_env: str = "local"
    app_debug: bool = True
    api_port: int = 8000
    storage_backend: str = "memory"
    database_url: str = "sqlite+pysqlite:///./nexus.db"
    jwt_secret: str = "replace-me"
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 720
    bootstrap_admin_email: str | None = None
    bootstrap_admin_password: str | None = None
    metrics_enabled: bool = False
    otel_enabled: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()
