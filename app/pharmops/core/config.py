from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "PHARMOPS-CORE"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./pharmops.db"
    DB_STATEMENT_TIMEOUT_MS: int = 15000
    SHORT_CODE_DEFAULT_EXPIRY_MINUTES: int = 15
    SCOPE_STRICT_CONTEXT: bool = False
    CLEANUP_RETIRE_PARTIAL: bool = False
    OPS_ENABLE_EXPIRED_SALE_SWEEP: bool = True
    METRICS_ENABLED: bool = True

settings = Settings()
