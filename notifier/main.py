"""Process host: owns the worker lifecycle and exposes health and metrics"""

from fastapi import FastAPI, Request, Response
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
import logging

from notifier.core.config import settings
from notifier.core.database import init_db, close_db
from notifier.core.exceptions import QueueUnavailableException
from notifier.core.firebase import initialize_firebase
from notifier.core.monitoring import setup_logging, queue_depth
from notifier.core.redis import redis_manager
from notifier.services.push_gateway import FirebasePushGateway
from notifier.services.queue import NotificationQueue
from notifier.services.worker import NotificationWorker

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME}...")

    if settings.ENVIRONMENT != "test":
        await init_db()

    client = await redis_manager.connect()
    app.state.queue = NotificationQueue(client)

    firebase_app = initialize_firebase()
    if firebase_app is None:
        logger.warning("Firebase is not configured, deliveries will fail until it is")

    app.state.worker = None
    if settings.WORKER_ENABLED:
        app.state.worker = NotificationWorker(app.state.queue, FirebasePushGateway(firebase_app))
        app.state.worker.start()

    try:
        yield
    finally:
        # Shutdown
        logger.info(f"Shutting down {settings.APP_NAME}...")
        if app.state.worker is not None:
            await app.state.worker.stop()
        await redis_manager.disconnect()
        await close_db()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

@app.get("/health")
async def health_check(request: Request):
    """Worker state and queue depth"""
    worker = getattr(request.app.state, "worker", None)
    queue = getattr(request.app.state, "queue", None)
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "worker": {"enabled": worker is not None, "running": bool(worker and worker.running)},
    }

    if worker is not None and not worker.running:
        health_status["status"] = "degraded"

    if queue is None:
        health_status["queue"] = {"status": "unconfigured"}
        health_status["status"] = "degraded"
    else:
        try:
            depth = await queue.length()
            queue_depth.set(depth)
            health_status["queue"] = {"status": "healthy", "depth": depth}
        except QueueUnavailableException as e:
            health_status["queue"] = {"status": "unhealthy", "error": e.detail}
            health_status["status"] = "unhealthy"

    return health_status

@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
