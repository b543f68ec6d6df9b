"""
Accounts: profiles, unique usernames, login history, bans, admin roles
and per-user settings.

Layout:
    users/{userId}                  profile (username, ban state, settings)
    usernames/{lowercase username}  {userId} index keeping usernames unique
    admins/{userId}                 presence marks an administrator
    data/{userId}/loginHistory      newest MAX_LOGIN_HISTORY logins
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore

from .firestore_client import require_ids, to_millis
from .schemas import UsernameInput, validate
from ..config import BAN_DURATIONS, MAX_LOGIN_HISTORY
from ..errors import UsernameTakenError, ValidationError
from ..utils.settings import UserSettings

logger = logging.getLogger(__name__)


@dataclass
class AppUser:
    """Profile data kept next to the authentication record."""

    uid: str
    username: str = ""
    displayName: str = ""
    email: str = ""
    photoURL: Optional[str] = None
    createdAt: Any = None
    bannedUntil: Optional[datetime] = None
    bannedPermanently: bool = False

    def is_banned(self, now: datetime = None) -> bool:
        if self.bannedPermanently:
            return True
        if self.bannedUntil is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.bannedUntil > now

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON responses."""
        return {
            'uid': self.uid,
            'username': self.username,
            'displayName': self.displayName,
            'email': self.email,
            'photoURL': self.photoURL,
            'createdAt': to_millis(self.createdAt),
            'bannedUntil': to_millis(self.bannedUntil),
            'bannedPermanently': self.bannedPermanently,
        }

    @classmethod
    def from_snapshot(cls, snapshot) -> 'AppUser':
        data = snapshot.to_dict() or {}
        return cls(
            uid=data.get('uid') or snapshot.id,
            username=data.get('username', ''),
            displayName=data.get('displayName', ''),
            email=data.get('email', ''),
            photoURL=data.get('photoURL'),
            createdAt=data.get('createdAt'),
            bannedUntil=data.get('bannedUntil'),
            bannedPermanently=data.get('bannedPermanently', False),
        )


class UserStore:
    """Data access for user accounts."""

    def __init__(self, client):
        self.db = client

    def _user_ref(self, user_id: str):
        require_ids(user_id=user_id)
        return self.db.collection('users').document(user_id)

    def _username_ref(self, username: str):
        return self.db.collection('usernames').document(username.lower())

    # =========================================================================
    # Profiles and usernames
    # =========================================================================

    def get_user(self, user_id: str) -> Optional[AppUser]:
        snapshot = self._user_ref(user_id).get()
        if not snapshot.exists:
            return None
        return AppUser.from_snapshot(snapshot)

    def get_user_by_username(self, username: str) -> Optional[AppUser]:
        if not username:
            return None
        snapshot = self._username_ref(username.strip()).get()
        if not snapshot.exists:
            return None
        return self.get_user((snapshot.to_dict() or {}).get('userId', ''))

    def check_username_exists(self, username: str) -> bool:
        """Case-insensitive check against the username index."""
        if not username or not username.strip():
            return False
        return self._username_ref(username.strip()).get().exists

    def create_initial_user_documents(self, user_id: str, username: str,
                                      display_name: str, email: str,
                                      photo_url: str = None) -> AppUser:
        """
        Create the profile and the username index entry in one batch.

        Raises:
            UsernameTakenError: The username already belongs to an account
        """
        name = validate(UsernameInput, {'username': username}).username
        if self.check_username_exists(name):
            raise UsernameTakenError("Username is already taken.")

        profile = {
            'uid': user_id,
            'username': name,
            'displayName': display_name or '',
            'email': email or '',
            'createdAt': firestore.SERVER_TIMESTAMP,
        }
        if photo_url:
            profile['photoURL'] = photo_url

        batch = self.db.batch()
        batch.set(self._user_ref(user_id), profile)
        batch.create(self._username_ref(name), {'userId': user_id})
        try:
            batch.commit()
        except (google_exceptions.AlreadyExists, google_exceptions.Conflict):
            raise UsernameTakenError("Username is already taken.")

        logger.info("Created profile for user %s (%s)", user_id, name)
        return self.get_user(user_id)

    def update_username(self, user_id: str, new_username: str) -> str:
        """
        Rename a user.

        The new name is checked against the index before anything is
        written; the profile update, the new index entry and the removal
        of the old entry then commit together.

        Returns:
            The stored (lowercase) username

        Raises:
            ValidationError: Name breaks the username rules
            UsernameTakenError: Name belongs to a different account
        """
        name = validate(UsernameInput, {'username': new_username}).username

        new_ref = self._username_ref(name)
        existing = new_ref.get()
        if existing.exists and (existing.to_dict() or {}).get('userId') != user_id:
            raise UsernameTakenError("Username is already taken.")

        user = self.get_user(user_id)
        if user is None:
            raise ValidationError("User profile not found.")

        old_name = (user.username or '').lower()
        if old_name == name:
            return name

        batch = self.db.batch()
        batch.update(self._user_ref(user_id), {'username': name})
        if not existing.exists:
            batch.create(new_ref, {'userId': user_id})
        if old_name:
            batch.delete(self._username_ref(old_name))
        try:
            batch.commit()
        except (google_exceptions.AlreadyExists, google_exceptions.Conflict):
            raise UsernameTakenError("Username is already taken.")

        logger.info("User %s renamed %r -> %r", user_id, old_name, name)
        return name

    # =========================================================================
    # Login history
    # =========================================================================

    def log_login_history(self, user_id: str, user_agent: str = '', platform: str = '') -> None:
        """
        Record a login and prune the history to the newest entries.

        Runs as a background task: failures are logged, never raised.
        """
        if not user_id:
            return

        try:
            history = self.db.collection('data', user_id, 'loginHistory')
            history.document().set({
                'timestamp': firestore.SERVER_TIMESTAMP,
                'userAgent': user_agent or '',
                'platform': platform or '',
            })

            query = history.order_by('timestamp', direction=firestore.Query.DESCENDING)
            stale = list(query.stream())[MAX_LOGIN_HISTORY:]
            if stale:
                batch = self.db.batch()
                for snapshot in stale:
                    batch.delete(snapshot.reference)
                batch.commit()
                logger.debug("Pruned %d old login records of %s", len(stale), user_id)
        except Exception:
            logger.exception("Error logging login history for %s", user_id)

    def get_login_history(self, user_id: str) -> list:
        history = self.db.collection('data', user_id, 'loginHistory')
        query = history.order_by('timestamp', direction=firestore.Query.DESCENDING)
        return [
            {**(snapshot.to_dict() or {}), 'id': snapshot.id,
             'timestamp': to_millis((snapshot.to_dict() or {}).get('timestamp'))}
            for snapshot in query.stream()
        ]

    # =========================================================================
    # Moderation and roles
    # =========================================================================

    def ban_user(self, user_id: str, duration: str, now: datetime = None) -> Optional[datetime]:
        """
        Ban a user for a week or permanently.

        Returns:
            End of the ban, or None for a permanent ban
        """
        if duration not in BAN_DURATIONS:
            raise ValidationError(f"duration must be one of: {', '.join(BAN_DURATIONS)}")

        days = BAN_DURATIONS[duration]
        if days is None:
            banned_until = None
            update = {'bannedPermanently': True, 'bannedUntil': None}
        else:
            now = now or datetime.now(timezone.utc)
            banned_until = now + timedelta(days=days)
            update = {'bannedPermanently': False, 'bannedUntil': banned_until}
        update['bannedAt'] = firestore.SERVER_TIMESTAMP

        self._user_ref(user_id).set(update, merge=True)
        logger.info("Banned user %s (%s)", user_id, duration)
        return banned_until

    def unban_user(self, user_id: str) -> None:
        self._user_ref(user_id).set({'bannedPermanently': False, 'bannedUntil': None}, merge=True)
        logger.info("Lifted ban on user %s", user_id)

    def is_banned(self, user_id: str, now: datetime = None) -> bool:
        user = self.get_user(user_id)
        return user.is_banned(now) if user else False

    def is_admin(self, user_id: str) -> bool:
        if not user_id:
            return False
        return self.db.collection('admins').document(user_id).get().exists

    # =========================================================================
    # Settings
    # =========================================================================

    def get_settings(self, user_id: str) -> UserSettings:
        """Stored settings, or the defaults for a new user."""
        snapshot = self._user_ref(user_id).get()
        data = (snapshot.to_dict() or {}) if snapshot.exists else {}
        return UserSettings.from_dict(data.get('settings') or {})

    def save_settings(self, user_id: str, updates: Dict[str, Any]) -> UserSettings:
        """Apply and persist a partial settings change."""
        settings = self.get_settings(user_id).merged(updates)
        self._user_ref(user_id).set({'settings': settings.to_dict()}, merge=True)
        return settings
