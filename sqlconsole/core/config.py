from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Empty host/user/database: asyncpg falls back to the PG* environment variables
    DATABASE_URL: str = "postgresql+asyncpg://"

    HOST: str = "0.0.0.0"
    PORT: int = 8080
    STATIC_DIR: str = "static"

    POOL_SIZE: int = 5
    MAX_OVERFLOW: int = 10
    POOL_TIMEOUT: float = 30.0
    POOL_RECYCLE: int = -1
    SQL_ECHO: bool = False

    WS_MAX_MESSAGE_SIZE: int = 16 * 1024 * 1024
    STATS_COMMAND: str = "stats"

    LOG_LEVEL: str = "INFO"

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create a single instance of the settings to use everywhere
settings = Settings()
