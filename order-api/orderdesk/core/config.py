from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    # DB
    DATABASE_URL: str

    # Static header keys (admin: sweep triggers, agent: printing agent)
    ADMIN_KEY: str
    AGENT_KEY: str

    # Used to build receipt and menu links inside customer messages
    PUBLIC_BASE_URL: str = "https://smartpedido.com.br"

    # Optional: Evolution API (WhatsApp gateway)
    EVOLUTION_BASE_URL: str | None = None
    EVOLUTION_API_KEY: str | None = None
    EVOLUTION_TIMEOUT_S: float = 10.0

    # Sweeps
    STUCK_ORDER_THRESHOLD_MINUTES: int = 1
    ORDER_RETENTION_DAYS: int = 7
    NOTIFY_LOOKBACK_DAYS: int = 2
    NOTIFY_BATCH_SIZE: int = 200
    NOTIFY_LEASE_SECONDS: int = 120

    # Runner intervals (seconds)
    RECOVER_INTERVAL_S: float = 60.0
    NOTIFY_INTERVAL_S: float = 60.0
    PURGE_INTERVAL_S: float = 3600.0

    LOG_LEVEL: str = "INFO"

    # Demo convenience
    CREATE_TABLES: int = 0  # 1 = create_all on startup

settings = Settings()
