from app.db.base import Base
from app.db.session import SessionLocal, engine

__all__ = ["Base", "SessionLocal", "engine"]
