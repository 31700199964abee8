"""Database connection helpers."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from dotenv import load_dotenv

from blockshot.helpers.config import get_optional_env, get_required_env


# Load environment variables from .env file
load_dotenv()

Base = declarative_base()


def get_database_url() -> str:
    """Get the database URL from environment variables.

    ``DATABASE_URL`` wins when set; otherwise the URL is assembled from the
    ``POSTGRE_*`` variables.

    Returns:
        str: PostgreSQL database URL

    Raises:
        ValueError: If required environment variables are not set
    """
    database_url = get_optional_env("DATABASE_URL")
    if database_url:
        return database_url

    postgre_host = get_required_env("POSTGRE_HOST")
    postgre_port = get_optional_env("POSTGRE_PORT", "5432")
    postgre_user = get_required_env("POSTGRE_USER")
    postgre_password = get_required_env("POSTGRE_PASSWORD")
    postgre_db = get_required_env("POSTGRE_DB")

    # Use psycopg (version 3) as the async PostgreSQL driver
    return (
        "postgresql+psycopg://"
        f"{postgre_user}:{postgre_password}"
        f"@{postgre_host}:{postgre_port}"
        f"/{postgre_db}"
    )


def create_engine_from_env(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine; nothing connects until first use."""
    return create_async_engine(database_url or get_database_url(), echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


__all__ = [
    "Base",
    "create_engine_from_env",
    "create_session_factory",
    "get_database_url",
]
