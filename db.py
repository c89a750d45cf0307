# backend/db.py

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings

# Base class for models
Base = declarative_base()


def make_engine(database_url: str = settings.database_url, echo: bool = settings.db_echo,
                pool_size: int = settings.db_pool_size, **kwargs):
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_size", pool_size)
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, echo=echo, **kwargs)


def make_session_factory(engine):
    # Objects stay readable after commit; responses are built after the gateway commits.
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
