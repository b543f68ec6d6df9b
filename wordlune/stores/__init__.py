"""
Firestore-backed data access for WordLune.
"""

from .firestore_client import get_client, set_client, Subscription
from .list_store import ListStore, UserList, ListWord
from .word_store import PersonalWordStore, PersonalWord
from .story_store import StoryStore, Story
from .user_store import UserStore, AppUser

__all__ = [
    'get_client',
    'set_client',
    'Subscription',
    'ListStore',
    'UserList',
    'ListWord',
    'PersonalWordStore',
    'PersonalWord',
    'StoryStore',
    'Story',
    'UserStore',
    'AppUser',
]
