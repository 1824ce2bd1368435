"""
SQLAlchemy session factory.

Reads the connection URL from the environment and provides a
``SessionLocal`` sessionmaker plus a ``get_session`` context manager.

Environment variables
---------------------
``DATABASE_URL``
    Full SQLAlchemy connection URL.  Default:
    ``sqlite:///mixmaster.db`` in the working directory.
"""

import os
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///mixmaster.db")

engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)


def get_session() -> Generator[Session, None, None]:
    """Yield a SQLAlchemy session, closing it on exit."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
