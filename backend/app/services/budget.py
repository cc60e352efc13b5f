"""Monthly AI spend guard."""
import logging
import time
from datetime import datetime
from typing import Dict, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app import models
from app.core.config import settings
from app.core.errors import BudgetExceeded

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 10

# user_id -> (checked_at, spent)
_spend_cache: Dict[str, Tuple[float, float]] = {}


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def monthly_spend(db: Session, user_id: str, now: Optional[datetime] = None) -> float:
    total = (
        db.query(func.coalesce(func.sum(models.UsageLog.estimated_cost_usd), 0.0))
        .filter(
            models.UsageLog.user_id == user_id,
            models.UsageLog.created_at >= month_start(now),
        )
        .scalar()
    )
    return float(total or 0.0)


def check_budget(db: Session, user_id: str) -> float:
    """Raise BudgetExceeded when this month's spend reached the cap. Returns the spend."""
    limit = settings.MONTHLY_BUDGET_USD
    cached = _spend_cache.get(user_id)
    if cached and time.monotonic() - cached[0] < CACHE_TTL_SECONDS:
        spent = cached[1]
    else:
        try:
            spent = monthly_spend(db, user_id)
        except Exception as e:
            logger.error("Budget check failed for %s: %s", user_id, e)
            raise BudgetExceeded("Budget check unavailable, refusing AI call")
        _spend_cache[user_id] = (time.monotonic(), spent)

    if spent >= limit:
        raise BudgetExceeded(
            f"Monthly AI budget exceeded (${spent:.2f} / ${limit:.0f}). Resets next month."
        )
    return spent


def invalidate_budget_cache(user_id: Optional[str] = None) -> None:
    if user_id is None:
        _spend_cache.clear()
    else:
        _spend_cache.pop(user_id, None)
