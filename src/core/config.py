"""
Execution service configuration
"""
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    """Execution service settings"""

    # Application
    app_name: str = "Codepool Execution Service"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8002
    workers: int = 1

    # Security
    api_key: str = "codepool-api-key-change-in-production"
    allowed_origins: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Scheduling
    execution_timeout: float = 30  # seconds, overall deadline per request
    max_workers: int = 10  # concurrent executions
    max_batch_size: int = 10

    # Runners
    runner_timeout: float = 30  # seconds, deadline around the interpreter process
    python_binary: str = "python3"
    node_binary: str = "node"
    probe_timeout: float = 5
    staging_dir: Optional[str] = None

    # Monitoring
    enable_metrics: bool = True

    # PostHog Analytics & Error Tracking
    posthog_api_key: Optional[str] = None
    posthog_host: str = "https://us.i.posthog.com"

    model_config = SettingsConfigDict(
        env_prefix="CODEPOOL_",
        env_file=".env",
        case_sensitive=False,
    )

@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
