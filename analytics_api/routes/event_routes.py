from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from analytics_api.core.timeutils import to_naive_utc
from analytics_api.database import get_db
from analytics_api.models.event import Event
from analytics_api.services import notifications, side_effects

router = APIRouter(tags=['events'])

RECENT_EVENTS_LIMIT = 10


class CreateEventRequest(BaseModel):
    username: str
    event_type: str
    timestamp: datetime | None = None

    @field_validator('username', 'event_type')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('username and event_type are required')
        return normalized

    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value) if value is not None else None


class EventResponse(BaseModel):
    id: int
    username: str
    event_type: str
    timestamp: datetime

    class Config:
        from_attributes = True


@router.get('/events', response_model=list[EventResponse])
def list_recent_events(db: Session = Depends(get_db)):
    return db.query(Event).order_by(Event.timestamp.desc(), Event.id.desc()).limit(RECENT_EVENTS_LIMIT).all()


@router.post('/events', response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    data: CreateEventRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    event = Event(username=data.username, event_type=data.event_type)
    if data.timestamp is not None:
        event.timestamp = data.timestamp

    db.add(event)
    db.commit()
    db.refresh(event)

    response = EventResponse.model_validate(event)
    background_tasks.add_task(side_effects.publish, notifications.NEW_EVENT, response.model_dump())
    background_tasks.add_task(side_effects.publish, notifications.METRICS_UPDATE, {'type': 'event'})
    return response
