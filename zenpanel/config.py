"""Panel configuration from environment."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./panel.db"

    # JWT
    secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440  # 24h

    # Node agents
    node_request_timeout: float = 10.0
    node_restart_timeout: float = 30.0
    stats_poll_interval: int = 60  # seconds, 0 disables the collector

    # Public subscription
    public_url: str = ""
    sub_password: str = ""
    subscription_update_interval: int = 12  # hours

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"


settings = Settings()
