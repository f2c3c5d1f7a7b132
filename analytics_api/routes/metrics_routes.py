from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from analytics_api.database import get_db
from analytics_api.services import metrics

router = APIRouter(tags=['metrics'])


class DailyCountResponse(BaseModel):
    date: str
    count: int


class MinuteCountResponse(BaseModel):
    minute: str
    count: int


class EventTypeCountResponse(BaseModel):
    event_type: str
    count: int


class TotalEventsResponse(BaseModel):
    total: int


class UserEventResponse(BaseModel):
    id: int
    principal_type: str = 'user'
    user_id: int | None = None
    username: str | None = None
    event_type: str
    timestamp: datetime
    meta: dict = {}

    class Config:
        from_attributes = True


class SeriesPointResponse(BaseModel):
    time: str
    value: int


class UsersAnsweredTodayResponse(BaseModel):
    total: int
    series: list[SeriesPointResponse]
    timezone: str


class HeatmapBucketResponse(BaseModel):
    hour: int
    dow: int
    count: int


class EventHeatmapResponse(BaseModel):
    timezone: str
    buckets: list[HeatmapBucketResponse]
    last24h: bool


@router.get('/signups-per-day', response_model=list[DailyCountResponse])
def signups_per_day(db: Session = Depends(get_db)):
    return metrics.signups_per_day(db)


@router.get('/active-users', response_model=list[MinuteCountResponse])
def active_users(
    window: str = Query(default='10m', description='Lookback window such as 30s, 10m, 2h or 1d.'),
    db: Session = Depends(get_db),
):
    return metrics.active_users(db, window=window)


@router.get('/event-types', response_model=list[EventTypeCountResponse])
def event_types(db: Session = Depends(get_db)):
    return metrics.event_type_distribution(db)


@router.get('/total-events', response_model=TotalEventsResponse)
def total_events(db: Session = Depends(get_db)):
    return {'total': metrics.total_events(db)}


@router.get('/recent-activity', response_model=list[UserEventResponse])
def recent_activity(db: Session = Depends(get_db)):
    return metrics.recent_activity(db)


@router.get('/users-answered-today', response_model=UsersAnsweredTodayResponse)
def users_answered_today(db: Session = Depends(get_db)):
    return metrics.users_answered_today(db)


@router.get('/event-heatmap', response_model=EventHeatmapResponse)
def event_heatmap(
    range_: str = Query(default=metrics.DEFAULT_HEATMAP_RANGE, alias='range'),
    db: Session = Depends(get_db),
):
    return metrics.event_heatmap(db, range_=range_)
