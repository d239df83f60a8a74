"""Agent configuration from environment."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Shared secret expected in X-API-Token; empty rejects every call
    api_token: str = ""

    # sing-box
    config_path: str = "/etc/sing-box/config.json"
    singbox_api: str = "http://127.0.0.1:10085"
    singbox_bin: str = "sing-box"
    restart_command: str = "docker restart zen-singbox"
    restart_timeout: int = 30  # seconds
    stats_timeout: float = 5.0

    # Server
    host: str = "0.0.0.0"
    port: int = 9090
    log_level: str = "INFO"
