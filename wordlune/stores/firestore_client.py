"""
Firestore client management and shared helpers for the stores.
"""

import logging
from datetime import datetime
from typing import Any, Callable, List, Optional, Type

import firebase_admin
from firebase_admin import credentials, firestore as admin_firestore

from ..config import FIREBASE_CREDENTIALS, FIREBASE_PROJECT_ID
from ..errors import DatabaseUnavailableError, ValidationError

logger = logging.getLogger(__name__)

_client = None


def get_client():
    """
    Get or create the Firestore client.

    Uses the service account file from FIREBASE_CREDENTIALS when set,
    application default credentials otherwise.

    Raises:
        DatabaseUnavailableError: If Firebase could not be initialized
    """
    global _client
    if _client is None:
        try:
            if not firebase_admin._apps:
                if FIREBASE_CREDENTIALS:
                    cred = credentials.Certificate(FIREBASE_CREDENTIALS)
                else:
                    cred = credentials.ApplicationDefault()
                options = {'projectId': FIREBASE_PROJECT_ID} if FIREBASE_PROJECT_ID else None
                firebase_admin.initialize_app(cred, options)
            _client = admin_firestore.client()
            logger.info("Firestore client initialized")
        except Exception as e:
            logger.error("Firestore initialization failed: %s", e)
            raise DatabaseUnavailableError(f"Database not available: {e}") from e
    return _client


def set_client(client) -> None:
    """Replace the shared client (used by tests and the CLI)."""
    global _client
    _client = client


def to_millis(value: Any) -> Optional[int]:
    """
    Convert a stored timestamp to epoch milliseconds.

    Firestore returns datetimes; older documents hold plain millisecond
    integers.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)):
        return int(value)
    return None


def require_ids(**ids: str) -> None:
    """Raise ValidationError naming the first empty id."""
    for name, value in ids.items():
        if not value or not str(value).strip():
            raise ValidationError(f"Missing {name}.")


class Subscription:
    """
    Handle for a live query listener.

    The owner must call unsubscribe(); a forgotten subscription keeps
    delivering updates until the process exits.
    """

    def __init__(self, watch, description: str = ""):
        self._watch = watch
        self.description = description
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._watch.unsubscribe()
            self.active = False
            logger.debug("Unsubscribed from %s", self.description)


def watch_query(query, record_cls: Type, callback: Callable[[List[Any]], None],
                description: str, include: Callable[[Any], bool] = None) -> Subscription:
    """
    Attach a snapshot listener that hands record objects to callback.

    Args:
        query: Firestore query or collection reference
        record_cls: Class with a from_snapshot() constructor
        callback: Receives the full, ordered list of records on every change
        description: Label used in log messages
        include: Optional predicate on each snapshot; others are skipped
    """
    def on_snapshot(docs, changes, read_time):
        try:
            callback([record_cls.from_snapshot(doc) for doc in docs
                      if include is None or include(doc)])
        except Exception:
            logger.exception("Error delivering %s update", description)

    return Subscription(query.on_snapshot(on_snapshot), description)
