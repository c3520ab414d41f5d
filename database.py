from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker


Base = declarative_base()


def database_url(url: Optional[str] = None) -> str:
    url = url or os.getenv("DATABASE_URL")
    if url:
        # Hosting platforms often hand out "postgres://..."; pin the psycopg (v3) driver.
        if "://" in url and "+" not in url.split("://", 1)[0]:
            if url.startswith("postgres://"):
                return url.replace("postgres://", "postgresql+psycopg://", 1)
            if url.startswith("postgresql://"):
                return url.replace("postgresql://", "postgresql+psycopg://", 1)
        return url
    # Local/dev fallback (keeps the repo runnable without Postgres).
    return "sqlite:///./otp.db"


def make_engine(url: Optional[str] = None) -> Engine:
    url = database_url(url)
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    # Tables are small and self-contained; no migrations needed.
    import models  # noqa: F401  (registers tables on Base)

    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)
