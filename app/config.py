from pydantic_settings import BaseSettings, SettingsConfigDict
class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str = "dev-secret-change-me"
    DB_URL: str = "sqlite:///./comandera.sqlite3"
    JWT_ISS: str = "comandera"
    JWT_EXP_MIN: int = 12*60
    BUSINESS_TZ: str = "UTC"
    LOG_LEVEL: str = "INFO"
    # transaction retry policy (settlement / inventory movements)
    TX_RETRY_ATTEMPTS: int = 3
    TX_RETRY_BACKOFF: float = 0.05
    # dashboard goal inputs
    FALLBACK_FOOD_COST: float = 0.35
    FALLBACK_FIXED_MONTHLY: float = 3_205_000
    TARGET_PROFIT: float = 2_000_000
    DAYS_OPEN: int = 26
    DAYS_OPEN_WEEK: int = 6
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
settings = Settings()
