"""Settings and async SQLAlchemy engine factory."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "postgresql+asyncpg://localhost/repository"
    bridge_max_workers: int | None = None  # None → ThreadPoolExecutor default
    echo_sql: bool = False


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    """Build the async engine that SqlAlchemyStore instances share."""
    settings = settings or Settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.echo_sql,
        pool_pre_ping=True,
    )
