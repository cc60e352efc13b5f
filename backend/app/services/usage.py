import logging
from typing import Optional

from sqlalchemy.orm import Session

from app import models
from app.core.config import settings
from app.core.constants import BUDGET_THRESHOLDS
from app.services.budget import invalidate_budget_cache, monthly_spend

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    user_id: str,
    type: models.NotificationType,
    title: str,
    message: str,
    reference_id=None,
    reference_type: Optional[str] = "generation",
) -> models.Notification:
    notification = models.Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        reference_id=str(reference_id) if reference_id is not None else None,
        reference_type=reference_type,
    )
    db.add(notification)
    return notification


def log_usage(
    db: Session,
    user_id: str,
    *,
    api_service: str,
    model: str,
    operation: str,
    estimated_cost_usd: float,
    project_id: Optional[int] = None,
    generation_id: Optional[int] = None,
    input_tokens: Optional[int] = None,
    output_tokens: Optional[int] = None,
    duration_seconds: Optional[float] = None,
) -> models.UsageLog:
    """Record a billable AI call and raise a budget alert when a threshold is crossed."""
    db.flush()
    before = monthly_spend(db, user_id)

    entry = models.UsageLog(
        user_id=user_id,
        project_id=project_id,
        generation_id=generation_id,
        api_service=api_service,
        model=model,
        operation=operation,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        duration_seconds=duration_seconds,
        estimated_cost_usd=estimated_cost_usd or 0.0,
    )
    db.add(entry)

    limit = settings.MONTHLY_BUDGET_USD
    after = before + (estimated_cost_usd or 0.0)
    crossed = [t for t in BUDGET_THRESHOLDS if before < t * limit <= after]
    if crossed:
        threshold = max(crossed)
        logger.warning("User %s crossed %d%% of monthly AI budget", user_id, threshold * 100)
        notify(
            db,
            user_id,
            models.NotificationType.budget_alert,
            title="Budget alert",
            message=f"You have used {threshold:.0%} of your monthly AI budget (${after:.2f} / ${limit:.0f}).",
            reference_type="budget",
        )

    invalidate_budget_cache(user_id)
    return entry
