# create_db.py - Create database tables
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent / "backend"
sys.path.insert(0, str(backend_dir))

from sqlalchemy import inspect

from app.db.base import Base
from app.db.session import engine
from app import models  # noqa: F401  registers every table on Base.metadata

if __name__ == "__main__":
    print(f"Creating tables on {engine.url.render_as_string(hide_password=True)} ...")
    Base.metadata.create_all(bind=engine)

    tables = inspect(engine).get_table_names()
    print(f"Created {len(tables)} tables:")
    for table in sorted(tables):
        print(f"   - {table}")
