from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user_id, get_db
from app import models, schemas

router = APIRouter(prefix="/calendar", tags=["calendar"])


def _get_event(db: Session, event_id: int, user_id: str) -> models.CalendarEvent:
    event = (
        db.query(models.CalendarEvent)
        .filter(models.CalendarEvent.id == event_id, models.CalendarEvent.user_id == user_id)
        .first()
    )
    if not event:
        raise HTTPException(status_code=404, detail="Calendar event not found")
    return event


@router.get("/", response_model=List[schemas.CalendarEvent])
def list_events(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    query = db.query(models.CalendarEvent).filter(models.CalendarEvent.user_id == user_id)
    if date_from:
        query = query.filter(models.CalendarEvent.scheduled_date >= date_from)
    if date_to:
        query = query.filter(models.CalendarEvent.scheduled_date <= date_to)
    return query.order_by(models.CalendarEvent.scheduled_date, models.CalendarEvent.id).all()


@router.post("/", response_model=schemas.CalendarEvent, status_code=status.HTTP_201_CREATED)
def create_event(
    event_in: schemas.CalendarEventCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    event = models.CalendarEvent(user_id=user_id, **event_in.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


@router.patch("/{event_id}", response_model=schemas.CalendarEvent)
def update_event(
    event_id: int,
    event_in: schemas.CalendarEventUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    event = _get_event(db, event_id, user_id)
    for field, value in event_in.model_dump(exclude_unset=True).items():
        setattr(event, field, value)
    db.commit()
    db.refresh(event)
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    event = _get_event(db, event_id, user_id)
    db.delete(event)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
