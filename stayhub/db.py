from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from typing import Iterator
import os

# DATABASE_URL defaults to a local SQLite file at ./data.db.
# Point it at Postgres/MySQL for staging and production; those schemas are managed by Alembic.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data.db")


def is_sqlite(url: str = DATABASE_URL) -> bool:
    return url.startswith("sqlite")


# SQLite is shared across the threadpool FastAPI runs sync endpoints on;
# server databases get a pre-pinged, periodically recycled pool.
if is_sqlite():
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        pool_recycle=280,
        pool_size=10,
        max_overflow=20,
    )

# One session per request; commits are explicit in the engine and route handlers
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """
    FastAPI dependency.

    Yields a session for the lifetime of the request and always closes it.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
