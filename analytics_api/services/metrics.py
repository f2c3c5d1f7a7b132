"""Read-only aggregations behind the ``/api/metrics`` endpoints.

Every function takes an optional ``strategy`` (see ``bucketing``) and, where a
time window is involved, an optional ``now`` so callers and tests can pin the
query instant. Results are plain dicts and lists ready for JSON.
"""

from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from analytics_api.core.timeutils import parse_duration, subtract_clamped, utcnow
from analytics_api.models.answer import Answer
from analytics_api.models.user import User
from analytics_api.models.user_event import UserEvent
from analytics_api.services.bucketing import BucketStrategy, strategy_for_session

DAY_FORMAT = '%Y-%m-%d'
ACTIVE_MINUTE_FORMAT = '%Y-%m-%dT%H:%M:00Z'
SERIES_MINUTE_FORMAT = '%Y-%m-%dT%H:%M:00.000Z'

DEFAULT_ACTIVE_WINDOW = timedelta(minutes=10)
RECENT_ACTIVITY_LIMIT = 10

DEFAULT_HEATMAP_RANGE = '7d'
HEATMAP_RANGES = {
    '24h': timedelta(hours=24),
    '7d': timedelta(hours=7 * 24),
}

TIMEZONE = 'UTC'


def signups_per_day(db: Session, strategy: BucketStrategy | None = None) -> list[dict]:
    strategy = strategy or strategy_for_session(db)
    day = strategy.truncate(User.created_at, 'day', DAY_FORMAT).label('day')
    rows = db.execute(
        select(day, func.count().label('count')).group_by(day).order_by(day)
    ).all()
    return [{'date': strategy.render(row.day, DAY_FORMAT), 'count': row.count} for row in rows]


def active_users(
    db: Session,
    window: str | None = None,
    strategy: BucketStrategy | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """Distinct principals (type, id, username) per minute over the trailing window."""
    strategy = strategy or strategy_for_session(db)
    since = subtract_clamped(now or utcnow(), parse_duration(window, DEFAULT_ACTIVE_WINDOW))

    minute = strategy.truncate(UserEvent.timestamp, 'minute', ACTIVE_MINUTE_FORMAT).label('minute')
    pairs = (
        select(minute, UserEvent.principal_type, UserEvent.user_id, UserEvent.username)
        .where(UserEvent.timestamp >= since)
        .distinct()
        .subquery()
    )
    rows = db.execute(
        select(pairs.c.minute, func.count().label('count'))
        .group_by(pairs.c.minute)
        .order_by(pairs.c.minute)
    ).all()
    return [
        {'minute': strategy.render(row.minute, ACTIVE_MINUTE_FORMAT), 'count': row.count}
        for row in rows
    ]


def event_type_distribution(db: Session) -> list[dict]:
    count = func.count().label('count')
    rows = db.execute(
        select(UserEvent.event_type, count)
        .group_by(UserEvent.event_type)
        .order_by(count.desc(), UserEvent.event_type.asc())
    ).all()
    return [{'event_type': row.event_type, 'count': row.count} for row in rows]


def total_events(db: Session) -> int:
    return db.execute(select(func.count()).select_from(UserEvent)).scalar_one()


def recent_activity(db: Session) -> list[UserEvent]:
    return (
        db.query(UserEvent)
        .order_by(UserEvent.timestamp.desc(), UserEvent.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
    )


def users_answered_today(
    db: Session,
    strategy: BucketStrategy | None = None,
    now: datetime | None = None,
) -> dict:
    """Distinct answering principals since UTC midnight, in total and per minute."""
    strategy = strategy or strategy_for_session(db)
    now = now or utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    in_window = (Answer.created_at >= start_of_day, Answer.created_at <= now)

    principals = (
        select(Answer.principal_type, Answer.user_id)
        .where(*in_window)
        .distinct()
        .subquery()
    )
    total = db.execute(select(func.count()).select_from(principals)).scalar_one()

    minute = strategy.truncate(Answer.created_at, 'minute', SERIES_MINUTE_FORMAT).label('minute')
    per_minute = (
        select(minute, Answer.principal_type, Answer.user_id)
        .where(*in_window)
        .distinct()
        .subquery()
    )
    rows = db.execute(
        select(per_minute.c.minute, func.count().label('value'))
        .group_by(per_minute.c.minute)
        .order_by(per_minute.c.minute)
    ).all()

    return {
        'total': total or 0,
        'series': [
            {'time': strategy.render(row.minute, SERIES_MINUTE_FORMAT), 'value': row.value}
            for row in rows
        ],
        'timezone': TIMEZONE,
    }


def normalize_heatmap_range(range_: str | None) -> str:
    return range_ if range_ in HEATMAP_RANGES else DEFAULT_HEATMAP_RANGE


def event_heatmap(
    db: Session,
    range_: str | None = None,
    strategy: BucketStrategy | None = None,
    now: datetime | None = None,
) -> dict:
    """UserEvent counts per (UTC day-of-week, UTC hour), Sunday=0."""
    strategy = strategy or strategy_for_session(db)
    range_ = normalize_heatmap_range(range_)
    since = (now or utcnow()) - HEATMAP_RANGES[range_]

    dow = strategy.day_of_week(UserEvent.timestamp).label('dow')
    hour = strategy.hour_of_day(UserEvent.timestamp).label('hour')
    rows = db.execute(
        select(dow, hour, func.count().label('count'))
        .where(UserEvent.timestamp >= since)
        .group_by(dow, hour)
        .order_by(dow, hour)
    ).all()

    buckets = [{'hour': int(row.hour), 'dow': int(row.dow), 'count': row.count} for row in rows]
    buckets.sort(key=lambda bucket: (bucket['dow'], bucket['hour']))
    return {
        'timezone': TIMEZONE,
        'buckets': buckets,
        'last24h': range_ == '24h',
    }
