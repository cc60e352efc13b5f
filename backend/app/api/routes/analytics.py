from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user_id, get_db
from app import models, schemas
from app.core.config import settings
from app.services.budget import month_start, monthly_spend

router = APIRouter(prefix="/analytics", tags=["analytics"])


def budget_status(db: Session, user_id: str) -> dict:
    spent = monthly_spend(db, user_id)
    limit = settings.MONTHLY_BUDGET_USD
    return {
        "spent_usd": round(spent, 4),
        "limit_usd": limit,
        "remaining_usd": round(max(limit - spent, 0.0), 4),
        "percent_used": round(spent / limit * 100, 2) if limit else 0.0,
        "allowed": spent < limit,
    }


@router.get("/budget", response_model=schemas.BudgetStatus)
def budget(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return budget_status(db, user_id)


@router.get("/usage", response_model=schemas.UsageSummary)
def usage(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    since = month_start()
    base = db.query(models.UsageLog).filter(
        models.UsageLog.user_id == user_id,
        models.UsageLog.created_at >= since,
    )

    by_service = {
        service: round(float(total or 0.0), 4)
        for service, total in base.with_entities(
            models.UsageLog.api_service, func.sum(models.UsageLog.estimated_cost_usd)
        ).group_by(models.UsageLog.api_service)
    }
    by_operation = {
        operation: round(float(total or 0.0), 4)
        for operation, total in base.with_entities(
            models.UsageLog.operation, func.sum(models.UsageLog.estimated_cost_usd)
        ).group_by(models.UsageLog.operation)
    }
    generation_counts = {
        gen_type.value: count
        for gen_type, count in db.query(models.Generation.type, func.count(models.Generation.id))
        .join(models.Project)
        .filter(models.Project.user_id == user_id, models.Generation.created_at >= since)
        .group_by(models.Generation.type)
    }

    return {
        "total_cost_usd": round(sum(by_service.values()), 4),
        "by_service": by_service,
        "by_operation": by_operation,
        "generation_counts": generation_counts,
        "budget": budget_status(db, user_id),
    }


@router.get("/stats", response_model=schemas.ProjectStats)
def stats(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    by_status = {
        project_status.value: count
        for project_status, count in db.query(models.Project.status, func.count(models.Project.id))
        .filter(models.Project.user_id == user_id)
        .group_by(models.Project.status)
    }
    completed_generations = (
        db.query(func.count(models.Generation.id))
        .join(models.Project)
        .filter(
            models.Project.user_id == user_id,
            models.Generation.status == models.GenerationStatus.completed,
        )
        .scalar()
    )
    recent = (
        db.query(models.Project.id)
        .filter(models.Project.user_id == user_id)
        .order_by(models.Project.updated_at.desc(), models.Project.id.desc())
        .limit(5)
        .all()
    )
    return {
        "total_projects": sum(by_status.values()),
        "by_status": by_status,
        "completed_generations": completed_generations or 0,
        "recent_project_ids": [row[0] for row in recent],
    }
