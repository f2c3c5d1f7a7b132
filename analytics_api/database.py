import asyncio
import logging
from collections.abc import Callable

from fastapi import HTTPException, status
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from analytics_api.core import config

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith('sqlite'):
        return {'connect_args': {'check_same_thread': False}}
    return {'pool_pre_ping': True}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


@event.listens_for(Base, 'before_update', propagate=True)
def _reject_created_at_changes(mapper, connection, target) -> None:
    if 'created_at' not in mapper.attrs:
        return
    history = inspect(target).attrs.created_at.history
    if history.deleted and history.deleted[0] is not None:
        raise ValueError(f'{mapper.class_.__name__}.created_at is immutable.')


class DatabaseConnector:
    """Connects to the store in the background, retrying with exponential backoff.

    The API starts serving immediately; routes that need the store answer 503
    until the first successful connection. Hooks registered with
    ``on_connect`` run once, after the schema has been created.
    """

    def __init__(self, bind, initial_delay: float, max_delay: float) -> None:
        self.bind = bind
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.connected = False
        self.last_error: str | None = None
        self._hooks: list[Callable[[], None]] = []
        self._task: asyncio.Task | None = None
        self._stopping: asyncio.Event | None = None

    def on_connect(self, hook: Callable[[], None]) -> None:
        self._hooks.append(hook)

    def connect_once(self) -> None:
        with self.bind.connect() as connection:
            connection.execute(text('SELECT 1'))
        Base.metadata.create_all(bind=self.bind)

    def _run_hooks(self) -> None:
        for hook in self._hooks:
            try:
                hook()
            except Exception:
                logger.exception('Database on-connect hook %s failed.', getattr(hook, '__name__', hook))

    async def run(self) -> None:
        delay = self.initial_delay
        attempt = 0
        while not self._stopping.is_set():
            attempt += 1
            try:
                await asyncio.to_thread(self.connect_once)
            except SQLAlchemyError as exc:
                self.last_error = str(exc)
                logger.warning(
                    'Database connection attempt %d failed: %s. Retrying in %.1fs.',
                    attempt,
                    exc.__class__.__name__,
                    delay,
                )
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
                delay = min(delay * 2, self.max_delay)
                continue

            self.connected = True
            self.last_error = None
            logger.info('Database connected after %d attempt(s).', attempt)
            await asyncio.to_thread(self._run_hooks)
            return

    def start(self) -> asyncio.Task:
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._stopping is not None:
            self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None


connector = DatabaseConnector(
    engine,
    initial_delay=config.DB_CONNECT_INITIAL_DELAY_SECONDS,
    max_delay=config.DB_CONNECT_MAX_DELAY_SECONDS,
)


def get_db():
    if not connector.connected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and that the database is reachable.',
        )

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
