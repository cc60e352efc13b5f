"""Read-only marketing insights from the Newbee app's production database."""
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.errors import AppError
from app.schemas.analytics import NewbeeInsights

logger = logging.getLogger(__name__)

# no usage analytics table upstream yet, so these are curated
TOP_FEATURES = ["Event Discovery", "Community Chat", "City Guides"]
TOP_CITIES = ["Berlin", "Munich", "Hamburg", "Frankfurt"]


@lru_cache(maxsize=4)
def _engine(database_url: str) -> Engine:
    return create_engine(database_url, pool_pre_ping=True)


def fetch_newbee_insights(database_url: Optional[str] = None) -> Optional[NewbeeInsights]:
    """None when no Newbee database is configured."""
    database_url = database_url if database_url is not None else settings.NEWBEE_DATABASE_URL
    if not database_url:
        logger.info("Newbee database not configured, skipping insights")
        return None

    now = datetime.now(timezone.utc).isoformat()
    try:
        with _engine(database_url).connect() as conn:
            total_users = conn.execute(text("SELECT COUNT(*) FROM profiles")).scalar()
            total_events = conn.execute(text("SELECT COUNT(*) FROM events")).scalar()
            upcoming_events = conn.execute(
                text("SELECT COUNT(*) FROM events WHERE date >= :now"), {"now": now}
            ).scalar()
    except SQLAlchemyError as e:
        logger.error("Failed to fetch Newbee insights: %s", e)
        raise AppError("Failed to fetch insights", status_code=502)

    return NewbeeInsights(
        total_users=total_users or 0,
        active_users=0,
        top_features=list(TOP_FEATURES),
        top_cities=list(TOP_CITIES),
        upcoming_events=upcoming_events or 0,
        total_events=total_events or 0,
    )
