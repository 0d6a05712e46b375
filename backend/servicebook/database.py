from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool, StaticPool

from .config import settings


def _make_engine():
    # In-memory SQLite (tests): one shared connection for every session
    if settings.DB_URL in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            settings.DB_URL,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    # SQLite file: the threadpool running sync routes shares connections
    if settings.DB_URL.startswith("sqlite"):
        return create_engine(
            settings.DB_URL,
            future=True,
            connect_args={"check_same_thread": False},
        )

    # Dev on a server DB: no pool, connection closed after every request
    if settings.APP_ENV != "prod":
        return create_engine(
            settings.DB_URL,
            future=True,
            pool_pre_ping=True,
            poolclass=NullPool,
        )

    return create_engine(
        settings.DB_URL,
        future=True,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=5,
        pool_recycle=1800,
    )


engine = _make_engine()

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
