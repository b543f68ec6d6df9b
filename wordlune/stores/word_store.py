"""
The personal word bank ("My Words"): a flat collection per user at
users/{userId}/words, independent of lists.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from google.cloud import firestore

from .firestore_client import require_ids, to_millis, watch_query, Subscription
from .schemas import PersonalWordInput, PersonalWordUpdate, validate, changed_fields
from ..config import PERSONAL_WORD_CATEGORIES

logger = logging.getLogger(__name__)


@dataclass
class PersonalWord:
    """A vocabulary entry on the user's dashboard."""

    id: str
    text: str
    category: str = 'Good'
    exampleSentence: str = ""
    pronunciationText: Optional[str] = None
    meaning: Optional[str] = None
    createdAt: Any = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON responses."""
        result = {
            'id': self.id,
            'text': self.text,
            'category': self.category,
            'exampleSentence': self.exampleSentence,
            'createdAt': to_millis(self.createdAt),
        }
        if self.pronunciationText:
            result['pronunciationText'] = self.pronunciationText
        if self.meaning:
            result['meaning'] = self.meaning
        return result

    @classmethod
    def from_snapshot(cls, snapshot) -> 'PersonalWord':
        data = snapshot.to_dict() or {}
        return cls(
            id=snapshot.id,
            text=data.get('text', ''),
            category=data.get('category', 'Good'),
            exampleSentence=data.get('exampleSentence', ''),
            pronunciationText=data.get('pronunciationText'),
            meaning=data.get('meaning'),
            createdAt=data.get('createdAt'),
        )

    @classmethod
    def from_list_word(cls, word) -> 'PersonalWord':
        """
        Build an unsaved personal word from a list word.

        List-only categories (Uncategorized, Repeat) become Good.
        """
        category = word.category if word.category in PERSONAL_WORD_CATEGORIES else 'Good'
        return cls(
            id='',
            text=word.word,
            category=category,
            exampleSentence=word.example,
            meaning=word.meaning or None,
        )

    def to_input(self) -> Dict:
        """Fields accepted by PersonalWordStore.add_word()."""
        return {
            'text': self.text,
            'category': self.category,
            'exampleSentence': self.exampleSentence,
            'pronunciationText': self.pronunciationText,
            'meaning': self.meaning,
        }


class PersonalWordStore:
    """Data access for the personal word bank."""

    def __init__(self, client):
        self.db = client

    def _words(self, user_id: str):
        require_ids(user_id=user_id)
        return self.db.collection('users', user_id, 'words')

    def add_word(self, user_id: str, word_data: Dict[str, Any]) -> str:
        """Save a new word and return its id."""
        data = validate(PersonalWordInput, word_data)
        payload = data.model_dump(exclude_none=True)
        payload['createdAt'] = firestore.SERVER_TIMESTAMP

        word_ref = self._words(user_id).document()
        word_ref.set(payload)
        logger.info("Added personal word %r for user %s", data.text, user_id)
        return word_ref.id

    def update_word(self, user_id: str, word_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        require_ids(word_id=word_id)
        changes = changed_fields(validate(PersonalWordUpdate, fields))
        self._words(user_id).document(word_id).update(changes)
        return changes

    def delete_word(self, user_id: str, word_id: str) -> None:
        require_ids(word_id=word_id)
        self._words(user_id).document(word_id).delete()
        logger.info("Deleted personal word %s of user %s", word_id, user_id)

    def get_word(self, user_id: str, word_id: str) -> Optional[PersonalWord]:
        require_ids(word_id=word_id)
        snapshot = self._words(user_id).document(word_id).get()
        if not snapshot.exists:
            return None
        return PersonalWord.from_snapshot(snapshot)

    def get_words(self, user_id: str, category: str = None,
                  search: str = None) -> List[PersonalWord]:
        """
        Words newest first, optionally filtered.

        Args:
            category: Only words in this category
            search: Case-insensitive substring of text or meaning
        """
        query = self._words(user_id)
        if category:
            query = query.where(filter=firestore.FieldFilter('category', '==', category))
        query = query.order_by('createdAt', direction=firestore.Query.DESCENDING)
        words = [PersonalWord.from_snapshot(doc) for doc in query.stream()]

        if search:
            needle = search.strip().lower()
            words = [
                w for w in words
                if needle in w.text.lower() or needle in (w.meaning or '').lower()
            ]
        return words

    def watch_words(self, user_id: str,
                    callback: Callable[[List[PersonalWord]], None]) -> Subscription:
        query = self._words(user_id).order_by('createdAt', direction=firestore.Query.DESCENDING)
        return watch_query(query, PersonalWord, callback, f"personal words of {user_id}")

    def get_stats(self, user_id: str, days: int = 7, now: datetime = None) -> Dict:
        """
        Dashboard statistics.

        Returns:
            {'total': n, 'byCategory': {category: n},
             'daily': [{'date': 'YYYY-MM-DD', 'count': n}, ...]} with one
            entry per day for the last `days` days, oldest first
        """
        now = now or datetime.now(timezone.utc)
        words = self.get_words(user_id)

        by_category = {category: 0 for category in PERSONAL_WORD_CATEGORIES}
        by_category.update(Counter(w.category for w in words if w.category in by_category))

        today = now.date()
        first_day = today - timedelta(days=days - 1)
        per_day = Counter()
        for word in words:
            millis = to_millis(word.createdAt)
            if millis is None:
                continue
            day = datetime.fromtimestamp(millis / 1000, tz=timezone.utc).date()
            if first_day <= day <= today:
                per_day[day] += 1

        daily = [
            {'date': (first_day + timedelta(days=i)).isoformat(),
             'count': per_day[first_day + timedelta(days=i)]}
            for i in range(days)
        ]

        return {
            'total': len(words),
            'byCategory': by_category,
            'daily': daily,
        }
