"""Domain exceptions mapped to HTTP responses in main.py."""
from typing import Optional


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class UpstreamAIError(AppError):
    """A vendor AI call failed or returned something unusable."""

    status_code = 502


class RateLimitExceeded(AppError):
    status_code = 429

    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(message)
        self.retry_after = retry_after


class BudgetExceeded(AppError):
    status_code = 429
