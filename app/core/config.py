from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    STORE_PROVIDER: str = "memory"  # "memory" | "supabase"

    SUPABASE_URL: str | None = None
    SUPABASE_API_KEY: str | None = None
    SUPABASE_BOOKINGS_TABLE: str = "bookings"
    SUPABASE_PROPERTIES_TABLE: str = "properties"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    FEED_POLL_INTERVAL_SECONDS: float = 5.0
    FEED_RECONNECT_INITIAL_DELAY_SECONDS: float = 1.0
    FEED_RECONNECT_MAX_DELAY_SECONDS: float = 30.0

    NOTIFICATION_INBOX_LIMIT: int = 50

    # In-memory mode only: preload a few demo properties so bookings can be created.
    SEED_DEMO_PROPERTIES: bool = True


settings = Settings()
