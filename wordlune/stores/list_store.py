"""
Word lists and the words inside them.

Layout:
    data/{userId}/{language}/{listId}                 list document
    data/{userId}/{language}/{listId}/words/{wordId}  word documents

Every write that adds or removes word documents changes the list's
wordCount in the same atomic batch, so wordCount always equals the number
of word documents under the list.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from google.cloud import firestore

from .firestore_client import require_ids, to_millis, watch_query, Subscription
from .schemas import (
    ListInput, ListWordInput, ListWordUpdate, validate, changed_fields,
)
from ..config import MAX_BATCH_WRITES, DEFAULT_LIST_WORD_CATEGORY, LIST_WORD_CATEGORIES
from ..errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class UserList:
    """A user-owned named collection of words in one learning language."""

    id: str
    name: str
    createdAt: Any = None
    wordCount: int = 0

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON responses."""
        return {
            'id': self.id,
            'name': self.name,
            'createdAt': to_millis(self.createdAt),
            'wordCount': self.wordCount,
        }

    @classmethod
    def from_snapshot(cls, snapshot) -> 'UserList':
        data = snapshot.to_dict() or {}
        return cls(
            id=snapshot.id,
            name=data.get('name', ''),
            createdAt=data.get('createdAt'),
            wordCount=data.get('wordCount', 0),
        )


@dataclass
class ListWord:
    """A word entry inside a list."""

    id: str
    word: str
    meaning: str = ""
    example: str = ""
    language: str = ""
    category: str = DEFAULT_LIST_WORD_CATEGORY
    createdAt: Any = None
    # Only set when words of several lists are returned together
    listId: Optional[str] = None
    listName: Optional[str] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON responses."""
        result = {
            'id': self.id,
            'word': self.word,
            'meaning': self.meaning,
            'example': self.example,
            'language': self.language,
            'category': self.category,
            'createdAt': to_millis(self.createdAt),
        }
        if self.listId is not None:
            result['listId'] = self.listId
            result['listName'] = self.listName
        return result

    @classmethod
    def from_snapshot(cls, snapshot) -> 'ListWord':
        data = snapshot.to_dict() or {}
        category = data.get('category') or DEFAULT_LIST_WORD_CATEGORY
        return cls(
            id=snapshot.id,
            word=data.get('word', ''),
            meaning=data.get('meaning', ''),
            example=data.get('example', ''),
            language=data.get('language', ''),
            category=category if category in LIST_WORD_CATEGORIES else DEFAULT_LIST_WORD_CATEGORY,
            createdAt=data.get('createdAt'),
        )

    @classmethod
    def from_personal_word(cls, word, language: str) -> 'ListWord':
        """
        Build an unsaved list word from a personal word.

        Personal categories (Bad, Good, Very Good) all exist in lists too.
        """
        return cls(
            id='',
            word=word.text,
            meaning=word.meaning or '',
            example=word.exampleSentence,
            language=language,
            category=word.category,
        )

    def to_input(self) -> Dict:
        """Fields accepted by ListStore.add_word_to_list()."""
        return {
            'word': self.word,
            'meaning': self.meaning,
            'example': self.example,
            'language': self.language,
            'category': self.category,
        }


class ListStore:
    """
    Data access for lists and list words.

    All methods are scoped by (user_id, language[, list_id]).
    """

    def __init__(self, client):
        """
        Args:
            client: google.cloud.firestore.Client (or compatible)
        """
        self.db = client

    # =========================================================================
    # References
    # =========================================================================

    def _lists(self, user_id: str, language: str):
        require_ids(user_id=user_id, language=language)
        return self.db.collection('data', user_id, language)

    def _list_ref(self, user_id: str, language: str, list_id: str):
        require_ids(list_id=list_id)
        return self._lists(user_id, language).document(list_id)

    def _words(self, user_id: str, language: str, list_id: str):
        return self._list_ref(user_id, language, list_id).collection('words')

    def _word_payload(self, data: ListWordInput, language: str) -> Dict:
        return {
            'word': data.word,
            'meaning': data.meaning,
            'example': data.example,
            'language': data.language or language,
            'category': data.category,
            'createdAt': firestore.SERVER_TIMESTAMP,
        }

    # =========================================================================
    # Lists
    # =========================================================================

    def create_list(self, user_id: str, language: str, name: str) -> str:
        """Create an empty list and return its id."""
        data = validate(ListInput, {'name': name})
        list_ref = self._lists(user_id, language).document()
        list_ref.set({
            'name': data.name,
            'createdAt': firestore.SERVER_TIMESTAMP,
            'wordCount': 0,
        })
        logger.info("Created list %s for user %s (%s)", list_ref.id, user_id, language)
        return list_ref.id

    def rename_list(self, user_id: str, language: str, list_id: str, name: str) -> None:
        data = validate(ListInput, {'name': name})
        self._list_ref(user_id, language, list_id).update({'name': data.name})

    def delete_list(self, user_id: str, language: str, list_id: str) -> int:
        """
        Delete a list together with all of its words.

        Lists with fewer words than the batch limit go in one atomic
        batch. Larger lists are emptied chunk by chunk; each chunk also
        lowers wordCount, and the list document goes with the last chunk.

        Returns:
            Number of word documents deleted
        """
        list_ref = self._list_ref(user_id, language, list_id)
        word_refs = list(list_ref.collection('words').list_documents())

        chunk_size = MAX_BATCH_WRITES - 1
        chunks = [word_refs[i:i + chunk_size] for i in range(0, len(word_refs), chunk_size)] or [[]]

        for chunk in chunks[:-1]:
            batch = self.db.batch()
            for ref in chunk:
                batch.delete(ref)
            batch.update(list_ref, {'wordCount': firestore.Increment(-len(chunk))})
            batch.commit()

        batch = self.db.batch()
        for ref in chunks[-1]:
            batch.delete(ref)
        batch.delete(list_ref)
        batch.commit()

        logger.info("Deleted list %s of user %s with %d words", list_id, user_id, len(word_refs))
        return len(word_refs)

    def get_lists(self, user_id: str, language: str) -> List[UserList]:
        """All lists of a user for one language, newest first."""
        query = self._lists(user_id, language).order_by(
            'createdAt', direction=firestore.Query.DESCENDING)
        return [UserList.from_snapshot(doc) for doc in query.stream()]

    def watch_lists(self, user_id: str, language: str,
                    callback: Callable[[List[UserList]], None]) -> Subscription:
        """Live version of get_lists(); callback gets the full list on every change."""
        query = self._lists(user_id, language).order_by(
            'createdAt', direction=firestore.Query.DESCENDING)
        return watch_query(query, UserList, callback, f"lists of {user_id}/{language}")

    def get_list_details(self, user_id: str, language: str, list_id: str) -> Optional[UserList]:
        """Fetch one list, or None if it does not exist."""
        snapshot = self._list_ref(user_id, language, list_id).get()
        if not snapshot.exists:
            return None
        return UserList.from_snapshot(snapshot)

    # =========================================================================
    # Words
    # =========================================================================

    def get_words_for_list(self, user_id: str, language: str, list_id: str) -> List[ListWord]:
        """Words of one list, newest first."""
        query = self._words(user_id, language, list_id).order_by(
            'createdAt', direction=firestore.Query.DESCENDING)
        return [ListWord.from_snapshot(doc) for doc in query.stream()]

    def get_word(self, user_id: str, language: str, list_id: str,
                 word_id: str) -> Optional[ListWord]:
        require_ids(word_id=word_id)
        snapshot = self._words(user_id, language, list_id).document(word_id).get()
        if not snapshot.exists:
            return None
        return ListWord.from_snapshot(snapshot)

    def watch_words_for_list(self, user_id: str, language: str, list_id: str,
                             callback: Callable[[List[ListWord]], None]) -> Subscription:
        """Live version of get_words_for_list()."""
        query = self._words(user_id, language, list_id).order_by(
            'createdAt', direction=firestore.Query.DESCENDING)
        return watch_query(query, ListWord, callback, f"words of list {list_id}")

    def get_all_words_from_all_lists(self, user_id: str, language: str) -> List[ListWord]:
        """Every word of every list, tagged with listId and listName, newest first."""
        words = []
        for user_list in self.get_lists(user_id, language):
            for word in self.get_words_for_list(user_id, language, user_list.id):
                word.listId = user_list.id
                word.listName = user_list.name
                words.append(word)
        words.sort(key=lambda w: to_millis(w.createdAt) or 0, reverse=True)
        return words

    def add_word_to_list(self, user_id: str, language: str, list_id: str,
                         word_data: Dict[str, Any]) -> str:
        """
        Add one word and increment wordCount in the same batch.

        Fails without writing anything if the list does not exist.

        Returns:
            The new word id
        """
        data = validate(ListWordInput, word_data)
        list_ref = self._list_ref(user_id, language, list_id)
        word_ref = list_ref.collection('words').document()

        batch = self.db.batch()
        batch.create(word_ref, self._word_payload(data, language))
        batch.update(list_ref, {'wordCount': firestore.Increment(1)})
        batch.commit()

        logger.info("Added word %r to list %s", data.word, list_id)
        return word_ref.id

    def add_multiple_words_to_list(self, user_id: str, language: str, list_id: str,
                                   processed_words: List[Dict[str, Any]],
                                   target_language: str) -> List[str]:
        """
        Add words produced by bulk enrichment in one atomic batch.

        Args:
            processed_words: Records with text, exampleSentence and meaning
            target_language: Language of the meanings, stored on each word

        Returns:
            Ids of the new words, in input order

        Raises:
            ValidationError: Empty input, too many words for one batch, or
                an invalid record
        """
        if not processed_words:
            raise ValidationError("At least one word is required.")
        if len(processed_words) > MAX_BATCH_WRITES - 1:
            raise ValidationError(
                f"Cannot add more than {MAX_BATCH_WRITES - 1} words at once.")

        entries = [
            validate(ListWordInput, {
                'word': record.get('text'),
                'meaning': record.get('meaning'),
                'example': record.get('exampleSentence'),
                'language': target_language,
            })
            for record in processed_words
        ]

        list_ref = self._list_ref(user_id, language, list_id)
        words = list_ref.collection('words')

        batch = self.db.batch()
        word_ids = []
        for entry in entries:
            word_ref = words.document()
            batch.create(word_ref, self._word_payload(entry, language))
            word_ids.append(word_ref.id)
        batch.update(list_ref, {'wordCount': firestore.Increment(len(entries))})
        batch.commit()

        logger.info("Added %d words to list %s", len(entries), list_id)
        return word_ids

    def update_word_in_list(self, user_id: str, language: str, list_id: str,
                            word_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Change word, meaning, example or category of a word.

        Membership does not change, so wordCount is left alone.

        Returns:
            The fields that were written
        """
        require_ids(word_id=word_id)
        changes = changed_fields(validate(ListWordUpdate, fields))
        self._words(user_id, language, list_id).document(word_id).update(changes)
        return changes

    def delete_word_from_list(self, user_id: str, language: str, list_id: str,
                              word_id: str) -> None:
        """Delete one word and decrement wordCount in the same batch."""
        self.delete_multiple_words_from_list(user_id, language, list_id, [word_id])

    def delete_multiple_words_from_list(self, user_id: str, language: str, list_id: str,
                                        word_ids: List[str]) -> int:
        """
        Delete several words and lower wordCount by the same amount, atomically.

        Each delete requires the word to exist; if any is missing the whole
        batch fails and nothing changes.

        Returns:
            Number of words deleted
        """
        unique_ids = list(dict.fromkeys(w for w in (word_ids or []) if w))
        if not unique_ids:
            raise ValidationError("At least one word id is required.")
        if len(unique_ids) > MAX_BATCH_WRITES - 1:
            raise ValidationError(
                f"Cannot delete more than {MAX_BATCH_WRITES - 1} words at once.")

        list_ref = self._list_ref(user_id, language, list_id)
        words = list_ref.collection('words')
        must_exist = self.db.write_option(exists=True)

        batch = self.db.batch()
        for word_id in unique_ids:
            batch.delete(words.document(word_id), option=must_exist)
        batch.update(list_ref, {'wordCount': firestore.Increment(-len(unique_ids))})
        batch.commit()

        logger.info("Deleted %d words from list %s", len(unique_ids), list_id)
        return len(unique_ids)
