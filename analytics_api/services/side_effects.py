"""Fire-and-forget work queued after the primary response.

Every task here runs behind ``best_effort``: a failure is logged and
swallowed so it can never change the outcome of the request that queued it.
"""

import functools
import logging
from typing import Any

from analytics_api import database
from analytics_api.models.user_event import UserEvent
from analytics_api.services import notifications

logger = logging.getLogger(__name__)


def best_effort(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            logger.warning('Best-effort task %s failed: %s', func.__name__, exc)
            return None

    return wrapper


def user_event_payload(user_event: UserEvent) -> dict[str, Any]:
    return {
        'id': user_event.id,
        'principal_type': user_event.principal_type,
        'user_id': user_event.user_id,
        'username': user_event.username,
        'event_type': user_event.event_type,
        'timestamp': user_event.timestamp,
        'meta': user_event.meta or {},
    }


@best_effort
def publish(event_name: str, payload: Any = None) -> None:
    notifications.hub.emit(event_name, payload)


@best_effort
def record_user_event(
    user_id: int | None,
    username: str | None,
    event_type: str,
    meta: dict | None = None,
    principal_type: str = 'user',
) -> None:
    """Persist a UserEvent in its own session, then announce it to subscribers."""
    db = database.SessionLocal()
    try:
        user_event = UserEvent(
            principal_type=principal_type,
            user_id=user_id,
            username=username,
            event_type=event_type,
            meta=meta or {},
        )
        db.add(user_event)
        db.commit()
        db.refresh(user_event)
        payload = user_event_payload(user_event)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    publish(notifications.USER_EVENT_CREATED, payload)
    publish(notifications.METRICS_UPDATE, {'type': event_type})
