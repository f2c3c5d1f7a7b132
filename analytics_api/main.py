import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from analytics_api import database
from analytics_api.bootstrap.admin import seed_admin_on_connect
from analytics_api.core import config
from analytics_api.models import admin, answer, event, question, user, user_event  # noqa: F401
from analytics_api.routes import admin_auth_routes, auth_routes, event_routes, mcq_routes, metrics_routes
from analytics_api.services.notifications import hub

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

database.connector.on_connect(seed_admin_on_connect)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config.validate_runtime_config()
    hub.bind(asyncio.get_running_loop())
    database.connector.start()
    logger.info('Analytics API started; connecting to the database in the background.')

    yield

    logger.info('Shutting down analytics API.')
    await database.connector.stop()
    await hub.close()
    database.engine.dispose()
    logger.info('Shutdown complete.')


app = FastAPI(title='Real-time Analytics API', lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'detail': jsonable_encoder(exc.errors())},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception('Database error while handling %s %s', request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={'detail': 'Database unavailable.'},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error while handling %s %s', request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'detail': 'Internal Server Error'},
    )


def health_status() -> dict:
    return {
        'status': 'ok',
        'message': 'Service is healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'environment': config.APP_ENV,
        'database': {
            'connected': database.connector.connected,
            'last_error': database.connector.last_error,
        },
        'notifications': {'subscribers': hub.subscriber_count},
        'process': {
            'uptime_seconds': round(time.monotonic() - STARTED_AT),
            'pid': os.getpid(),
        },
    }


@app.get('/')
def root():
    return health_status()


@app.get('/health')
def health():
    return health_status()


@app.websocket('/ws')
async def notifications_socket(websocket: WebSocket):
    await hub.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug('Notification subscriber closed the connection.')
    finally:
        hub.disconnect(websocket)


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(admin_auth_routes.router, prefix='/api/admin')
app.include_router(event_routes.router, prefix='/api')
app.include_router(mcq_routes.router, prefix='/api')
app.include_router(metrics_routes.router, prefix='/api/metrics')
