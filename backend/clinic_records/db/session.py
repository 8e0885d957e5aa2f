from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic_records.core.settings import settings
from clinic_records.models import Base


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url == "sqlite://" or ":memory:" in database_url


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if _is_memory_sqlite(database_url):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def build_sessionmaker(bind: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=bind)


def init_db(bind: Engine) -> None:
    Base.metadata.create_all(bind)


engine = build_engine(settings.database_url)
SessionLocal = build_sessionmaker(engine)
