from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """
    Keyphrase service settings, read from the process environment or a
    .env file (NEO4J_PASSWORD usually lives there).

    Command-line flags of run_keyphrase_service.py override PORT, THROTTLE,
    CONSUMER_ENABLED and LOG_LEVEL.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Environment
    environment: str = "development"
    log_level: str = "INFO"
    app_version: str = "0.1.0"

    # HTTP
    port: int = 8080

    # Neo4j
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = ""
    neo4j_database: str = "neo4j"

    # Feed
    redis_url: str = "redis://localhost:6379"
    feed_queue: str = "queue:concept-suggestions"
    consumer_enabled: bool = True
    consumer_timeout_seconds: int = 1
    origin_system_id: str = "concept-suggestor"

    # Ingestion
    throttle: float = 1000.0
    max_in_flight_writes: int = 64
    shutdown_grace_seconds: float = 5.0

    @field_validator('throttle', 'max_in_flight_writes', 'consumer_timeout_seconds')
    @classmethod
    def must_be_positive(cls, v):
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        return str(v).upper()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
