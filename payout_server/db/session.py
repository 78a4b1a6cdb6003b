"""Database session and engine setup using SQLAlchemy's async API."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payout_server.config import DATABASE_URL, READ_DATABASE_URL

engine = create_async_engine(DATABASE_URL, echo=False)
SessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
    class_=AsyncSession,
)

# Reporting reads tolerate replica lag; everything that mutates claims must
# go through SessionLocal.
if READ_DATABASE_URL == DATABASE_URL:
    read_engine = engine
else:
    read_engine = create_async_engine(READ_DATABASE_URL, echo=False)

ReadSessionLocal = async_sessionmaker(
    bind=read_engine,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
    class_=AsyncSession,
)
