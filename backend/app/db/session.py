from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings

_engine_kwargs = {"future": True, "pool_pre_ping": True}
if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
    if settings.SQLALCHEMY_DATABASE_URI in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every thread sees an empty db
        _engine_kwargs["poolclass"] = StaticPool

engine = create_engine(settings.SQLALCHEMY_DATABASE_URI, **_engine_kwargs)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
