from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "NetCap Capacity Analytics"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "*"

    # Saved path batches
    BATCH_STORE_BACKEND: str = "memory"   # memory, redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Path batch analysis
    MAX_BATCH_QUERIES: int = 500
    PERF_FALLBACK_MAX_LOOKUPS: int = 200  # on-demand lookups per batch before truncating
    UNMATCHED_SAMPLE_SIZE: int = 20

    # Result shaping
    LAG_RESULT_LIMIT: int = 50
    UPGRADE_AUTOSELECT_COUNT: int = 3

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
