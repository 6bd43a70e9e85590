"""lixian configuration management."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="LIXIAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 5000

    # Paths, relative to the working directory
    static_dir: Path = Path("html")
    config_dir: Path = Path("config")

    # aria2 JSON-RPC endpoint, overridden by <config_dir>/aria2.json
    aria2_url: str = "http://localhost:6800/jsonrpc"
    aria2_timeout: float = 30.0

    log_level: str = "INFO"

    @property
    def aria2_config_path(self) -> Path:
        """Location of the persisted aria2 settings."""
        return self.config_dir / "aria2.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
