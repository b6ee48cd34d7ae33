from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "orders"
    POSTGRES_USER: str = "orders"
    POSTGRES_PASSWORD: str = "orders"
    # Overrides the Postgres URL when set (e.g. "sqlite://" for tests)
    DATABASE_URL: str = ""

    API_KEY: str = ""
    PUBSUB_REQUIRE_API_KEY: bool = False

    ORDER_INITIAL_STATUS: str = "En attente de confirmation"
    ORDER_PRICE_REQUIRED: bool = False
    CONFIRMATION_DEFAULT_PRICE: float = 0.0

    ORDER_EVENTS_URL: str = ""
    ORDER_EVENTS_TOKEN: str = ""
    ORDER_EVENTS_TIMEOUT: float = 5.0

    LOG_LEVEL: str = "INFO"
    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    class Config:
        env_file = ".env"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

@lru_cache
def get_settings() -> Settings:
    return Settings()
