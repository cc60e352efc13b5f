"""Token-bucket rate limiting persisted in the rate_limit_buckets table."""
import logging
import math
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import models
from app.core.config import settings
from app.core.constants import RATE_LIMITS
from app.core.errors import RateLimitExceeded

logger = logging.getLogger(__name__)


def bucket_limits(category: str) -> tuple:
    if category == "ai-media" and not settings.is_production:
        return RATE_LIMITS["ai-media-preview"]
    if category not in RATE_LIMITS:
        raise ValueError(f"Unknown rate limit category: {category}")
    return RATE_LIMITS[category]


def check_rate_limit(db: Session, user_id: str, category: str, now: Optional[datetime] = None) -> float:
    """
    Take one token from the (user, category) bucket.

    Returns the tokens left. Raises RateLimitExceeded with a retry_after in
    seconds when the bucket is empty. Database trouble lets the request through.
    """
    max_tokens, refill_rate = bucket_limits(category)
    now = now or datetime.utcnow()

    try:
        bucket = (
            db.query(models.RateLimitBucket)
            .filter(
                models.RateLimitBucket.user_id == user_id,
                models.RateLimitBucket.category == category,
            )
            .first()
        )
        if bucket is None:
            bucket = models.RateLimitBucket(
                user_id=user_id,
                category=category,
                tokens=max_tokens - 1,
                last_refill=now,
            )
            db.add(bucket)
            db.commit()
            return bucket.tokens

        elapsed = max((now - bucket.last_refill).total_seconds(), 0.0)
        tokens = min(max_tokens, bucket.tokens + elapsed * refill_rate)

        if tokens < 1:
            bucket.tokens = tokens
            bucket.last_refill = now
            db.commit()
            retry_after = math.ceil((1 - tokens) / refill_rate)
            raise RateLimitExceeded(
                f"Rate limit exceeded. Try again in {retry_after} seconds.",
                retry_after=retry_after,
            )

        bucket.tokens = tokens - 1
        bucket.last_refill = now
        db.commit()
        return bucket.tokens
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Rate limit check failed open for %s/%s: %s", user_id, category, e)
        return float(max_tokens)
