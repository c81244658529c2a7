"""Firebase Admin SDK initialization for the push gateway"""

import firebase_admin
from firebase_admin import credentials
import json
import logging
from typing import Optional

from notifier.core.config import settings

logger = logging.getLogger(__name__)

firebase_app: Optional[firebase_admin.App] = None

def load_credentials(
    credentials_json: Optional[str] = None,
    credentials_path: Optional[str] = None
) -> credentials.Certificate:
    """Service account credentials, inline JSON taking precedence over a file"""
    credentials_json = credentials_json or settings.FIREBASE_CREDENTIALS_JSON
    credentials_path = credentials_path or settings.FIREBASE_CREDENTIALS_PATH

    if credentials_json:
        return credentials.Certificate(json.loads(credentials_json))
    if credentials_path:
        return credentials.Certificate(credentials_path)
    raise ValueError("Firebase credentials not configured")

def initialize_firebase() -> Optional[firebase_admin.App]:
    """Initialize the default Firebase app once per process

    Returns None when credentials are missing or invalid; the worker still
    runs and every delivery attempt fails until Firebase is configured.
    """
    global firebase_app

    if firebase_app:
        return firebase_app

    try:
        firebase_app = firebase_admin.initialize_app(load_credentials())
    except (ValueError, IOError) as e:
        logger.error(f"Failed to initialize Firebase: {e}")
        return None

    logger.info("Firebase Admin SDK initialized successfully")
    return firebase_app
