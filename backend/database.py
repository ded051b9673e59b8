import os
import logging
from pathlib import Path
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from typing import AsyncGenerator

from core.environment import get_database_url, is_production

logger = logging.getLogger(__name__)

DATABASE_URL = get_database_url()

# Convert postgres:// to postgresql:// for SQLAlchemy compatibility
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)


def to_async_url(url: str) -> str:
    """Map a sync database URL onto its async driver"""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def get_database_config(url: str) -> dict:
    """Get engine configuration with connection pooling settings"""
    if url.startswith("sqlite"):
        db_path = url.split(":///", 1)[-1]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        logger.info("Database: SQLite configured")
        return {
            "echo": os.getenv("SQL_DEBUG", "false").lower() == "true",
            "connect_args": {"check_same_thread": False},
        }

    config = {
        "echo": os.getenv("SQL_DEBUG", "false").lower() == "true",
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 3600,  # Recycle connections every hour
        "pool_pre_ping": True,
        "connect_args": {
            "ssl": "require" if is_production() else "prefer",
            "server_settings": {"application_name": "energy_audit"},
        },
    }
    logger.info("Database: PostgreSQL configured")
    return config


async_database_url = to_async_url(DATABASE_URL)
async_engine = create_async_engine(async_database_url, **get_database_config(async_database_url))

AsyncSessionLocal = sessionmaker(
    async_engine, class_=AsyncSession, expire_on_commit=False
)


async def create_db_and_tables():
    """Create database tables"""
    # Register table metadata
    import models.db_models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting an async database session"""
    async with AsyncSessionLocal() as session:
        yield session
