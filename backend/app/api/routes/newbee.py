from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_current_user_id
from app import schemas
from app.services.newbee import fetch_newbee_insights

router = APIRouter(prefix="/newbee", tags=["newbee"])


@router.get("/insights", response_model=schemas.NewbeeInsights)
def newbee_insights(user_id: str = Depends(get_current_user_id)):
    insights = fetch_newbee_insights()
    if insights is None:
        raise HTTPException(status_code=503, detail="Newbee data source not configured")
    return insights
