from typing import Dict, List

from pydantic import BaseModel


class BudgetStatus(BaseModel):
    spent_usd: float
    limit_usd: float
    remaining_usd: float
    percent_used: float
    allowed: bool


class UsageSummary(BaseModel):
    total_cost_usd: float
    by_service: Dict[str, float]
    by_operation: Dict[str, float]
    generation_counts: Dict[str, int]
    budget: BudgetStatus


class ProjectStats(BaseModel):
    total_projects: int
    by_status: Dict[str, int]
    completed_generations: int
    recent_project_ids: List[int]


class NewbeeInsights(BaseModel):
    total_users: int
    active_users: int
    top_features: List[str]
    top_cities: List[str]
    upcoming_events: int
    total_events: int
