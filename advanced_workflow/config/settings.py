"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "advanced_workflow_dev"

    # Repository backend: "mongo" or "memory"
    storage_backend: str = "mongo"

    # Bearer tokens
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_audience: Optional[str] = None

    # Members holding this role bypass assignment checks
    admin_role: str = "ADMIN"

    # Engine
    engine_max_chain_steps: int = 100  # Consecutive automatic transitions per execute call

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"
    log_to_file: bool = True

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Re-trigger poller
    scheduler_enabled: bool = True
    scheduler_interval_seconds: int = 60
    system_actor_id: str = "system"

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def use_memory_storage(self) -> bool:
        """Check if repositories should live in process memory"""
        return self.storage_backend.lower() == "memory"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
