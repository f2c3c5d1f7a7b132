"""Live notification fan-out over WebSockets.

Clients connect to ``/ws`` and receive ``{"event": name, "data": payload}``
messages. Publishing never blocks the caller: the broadcast is scheduled on
the server's event loop and the caller returns immediately.
"""

import asyncio
import logging
from typing import Any

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

NEW_EVENT = 'new_event'
NEW_ANSWER = 'new_answer'
USER_EVENT_CREATED = 'user_event_created'
METRICS_UPDATE = 'metrics_update'


class NotificationHub:
    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._connections)

    @property
    def pending_broadcasts(self) -> int:
        return len(self._pending)

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.bind(asyncio.get_running_loop())
        self._connections.add(websocket)
        logger.info('Notification subscriber connected (%d total).', self.subscriber_count)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.discard(websocket)
            logger.info('Notification subscriber disconnected (%d total).', self.subscriber_count)

    async def broadcast(self, message: dict) -> None:
        for websocket in list(self._connections):
            try:
                await websocket.send_json(message)
            except Exception as exc:
                logger.warning('Dropping notification subscriber after send failure: %s', exc)
                self.disconnect(websocket)

    def emit(self, event_name: str, payload: Any = None) -> None:
        if self._loop is None or not self._connections:
            logger.debug('No subscribers for %s; skipping emit.', event_name)
            return

        message = {'event': event_name, 'data': jsonable_encoder(payload)}
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            task = self._loop.create_task(self.broadcast(message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        else:
            asyncio.run_coroutine_threadsafe(self.broadcast(message), self._loop)

    async def close(self) -> None:
        for websocket in list(self._connections):
            try:
                await websocket.close()
            except Exception as exc:
                logger.debug('Ignoring error while closing subscriber: %s', exc)
        self._connections.clear()


hub = NotificationHub()
