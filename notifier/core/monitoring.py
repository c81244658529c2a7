# Notifier Monitoring Configuration
# Prometheus metrics and logging setup

import logging
import logging.handlers
import os
from typing import Optional
from prometheus_client import Counter, Gauge

from .config import settings

# Pipeline metrics
notifications_enqueued = Counter(
    'notifications_enqueued_total',
    'Notification logs created by the producer',
    ['status']
)
notifications_processed = Counter(
    'notifications_processed_total',
    'Queue jobs handled by the worker',
    ['outcome']
)
device_tokens_deactivated = Counter(
    'device_tokens_deactivated_total',
    'Device tokens disabled after delivery feedback'
)
queue_errors = Counter(
    'notification_queue_errors_total',
    'Queue backend errors',
    ['operation']
)
queue_depth = Gauge('notification_queue_depth', 'Jobs waiting in the notification queue')

def setup_logging(log_level: Optional[str] = None, log_file: Optional[str] = None):
    """Configure logging for the application"""

    log_level = log_level or settings.LOG_LEVEL
    log_file = log_file or settings.LOG_FILE

    # Configure logging format
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers = [console_handler]

    # File handler with rotation
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=handlers,
        force=True
    )

    # Silence noisy loggers in production
    if settings.ENVIRONMENT == "production":
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
