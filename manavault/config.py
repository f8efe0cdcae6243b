from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="MANAVAULT_")

    app_name: str = "ManaVault"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/manavault"

    # Scryfall asks for 50-100ms between requests; 100ms keeps us near 10 req/s
    scryfall_api_url: str = "https://api.scryfall.com"
    scryfall_user_agent: str = "ManaVault/1.0"
    scryfall_min_interval: float = 0.1
    scryfall_retry_delay: float = 1.0
    scryfall_max_retries: int = 3
    scryfall_timeout: float = 30.0

    # Rows per write for restore, import and price sync
    bulk_batch_size: int = 100


settings = Settings()
