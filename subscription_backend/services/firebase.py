"""Firebase Admin SDK initialization."""

from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

from subscription_backend.logging_config import get_logger
from subscription_backend.models import BillingSettings

logger = get_logger(__name__)


def get_firebase_app(settings: BillingSettings) -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use.

    Uses the service account file from settings when given, otherwise
    Application Default Credentials.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if settings.firebase_credentials_path:
        credential = credentials.Certificate(settings.firebase_credentials_path)
    else:
        credential = credentials.ApplicationDefault()

    options: Optional[dict] = None
    if settings.firebase_project_id:
        options = {"projectId": settings.firebase_project_id}

    app = firebase_admin.initialize_app(credential, options)
    logger.info(
        "firebase_initialized",
        project_id=settings.firebase_project_id,
        service_account=bool(settings.firebase_credentials_path),
    )
    return app


def get_firestore_client(settings: BillingSettings):
    """Firestore client bound to the default Firebase app."""
    return firestore.client(get_firebase_app(settings))
