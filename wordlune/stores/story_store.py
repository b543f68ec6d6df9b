"""
Leveled reading stories.

Each user story is stored twice, under the same id:
    stories/{language}/stories/{storyId}            public copy (browse by language)
    stories_by_author/{authorId}/stories/{storyId}  author mirror (list by author)

Both copies are written by the same batch so they stay identical.
Admin stories (authorId "admin") only have the public copy.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore

from .firestore_client import require_ids, to_millis, watch_query, Subscription
from .schemas import StoryInput, StoryUpdate, validate, changed_fields
from ..config import ADMIN_AUTHOR_ID, ADMIN_AUTHOR_NAME, MAX_BATCH_WRITES
from ..errors import AuthorizationError

logger = logging.getLogger(__name__)

PUBLIC_ROOT = 'stories'
MIRROR_ROOT = 'stories_by_author'


def _path_parts(snapshot) -> List[str]:
    return snapshot.reference.path.split('/')


def is_public_copy(snapshot) -> bool:
    parts = _path_parts(snapshot)
    return len(parts) == 4 and parts[0] == PUBLIC_ROOT


def is_author_mirror(snapshot) -> bool:
    parts = _path_parts(snapshot)
    return len(parts) == 4 and parts[0] == MIRROR_ROOT


@dataclass
class Story:
    """A short text for reading practice."""

    id: str
    title: str
    language: str
    level: str = 'A1'
    category: str = ''
    content: str = ''
    isPublished: bool = False
    authorId: str = ''
    authorName: str = ''
    authorPhotoURL: Optional[str] = None
    likeCount: int = 0
    commentCount: int = 0
    createdAt: Any = None
    updatedAt: Any = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON responses."""
        return {
            'id': self.id,
            'title': self.title,
            'language': self.language,
            'level': self.level,
            'category': self.category,
            'content': self.content,
            'isPublished': self.isPublished,
            'authorId': self.authorId,
            'authorName': self.authorName,
            'authorPhotoURL': self.authorPhotoURL,
            'likeCount': self.likeCount,
            'commentCount': self.commentCount,
            'createdAt': to_millis(self.createdAt),
            'updatedAt': to_millis(self.updatedAt),
        }

    @classmethod
    def from_snapshot(cls, snapshot) -> 'Story':
        data = snapshot.to_dict() or {}
        language = data.get('language')
        if not language and is_public_copy(snapshot):
            # Older documents only carry the language in their path
            language = _path_parts(snapshot)[1]
        return cls(
            id=snapshot.id,
            title=data.get('title', ''),
            language=language or '',
            level=data.get('level', 'A1'),
            category=data.get('category', ''),
            content=data.get('content', ''),
            isPublished=data.get('isPublished', False),
            authorId=data.get('authorId', ''),
            authorName=data.get('authorName', ''),
            authorPhotoURL=data.get('authorPhotoURL'),
            likeCount=data.get('likeCount', 0),
            commentCount=data.get('commentCount', 0),
            createdAt=data.get('createdAt'),
            updatedAt=data.get('updatedAt'),
        )

    @classmethod
    def from_dict(cls, data: Dict) -> 'Story':
        """Build from a request body; only identifying fields are required."""
        return cls(
            id=data.get('id', ''),
            title=data.get('title', ''),
            language=data.get('language', ''),
            authorId=data.get('authorId', ''),
        )


StoryRef = Union[Story, Dict[str, Any]]


class StoryStore:
    """Data access for stories, their author mirrors and moderation views."""

    def __init__(self, client):
        self.db = client

    # =========================================================================
    # References
    # =========================================================================

    def _public(self, language: str):
        require_ids(language=language)
        return self.db.collection(PUBLIC_ROOT, language, 'stories')

    def _mirror(self, author_id: str):
        require_ids(author_id=author_id)
        return self.db.collection(MIRROR_ROOT, author_id, 'stories')

    def _as_story(self, story: StoryRef) -> Story:
        return story if isinstance(story, Story) else Story.from_dict(story)

    # =========================================================================
    # Writes
    # =========================================================================

    def upsert_story(self, story_data: Dict[str, Any], story_id: str = None) -> str:
        """
        ADMIN: create or update a story.

        New stories go to the public collection only; they get authorId
        "admin", are published immediately and start with zero likes and
        comments. Updating a user's story patches its mirror in the same
        batch.

        Returns:
            The story id
        """
        if story_id:
            language = story_data.get('language')
            changes = changed_fields(validate(StoryUpdate, story_data))
            changes['updatedAt'] = firestore.SERVER_TIMESTAMP
            public_ref = self._public(language).document(story_id)
            snapshot = public_ref.get()
            if not snapshot.exists:
                raise google_exceptions.NotFound(f"Story {story_id} not found.")

            # Moderating a user story must patch its mirror too
            batch = self.db.batch()
            batch.update(public_ref, changes)
            author_id = (snapshot.to_dict() or {}).get('authorId')
            if author_id and author_id != ADMIN_AUTHOR_ID:
                batch.update(self._mirror(author_id).document(story_id), changes)
            batch.commit()
            logger.info("Admin updated story %s (%s)", story_id, language)
            return story_id

        data = validate(StoryInput, story_data)
        payload = data.model_dump()
        payload.update({
            'authorId': ADMIN_AUTHOR_ID,
            'authorName': story_data.get('authorName') or ADMIN_AUTHOR_NAME,
            'isPublished': True,
            'likeCount': 0,
            'commentCount': 0,
            'createdAt': firestore.SERVER_TIMESTAMP,
            'updatedAt': firestore.SERVER_TIMESTAMP,
        })
        story_ref = self._public(data.language).document()
        story_ref.set(payload)
        logger.info("Admin created story %s (%s)", story_ref.id, data.language)
        return story_ref.id

    def upsert_user_story(self, user_id: str, story_data: Dict[str, Any],
                          story_id: str = None, author_name: str = '',
                          author_photo_url: str = None) -> str:
        """
        Create or update a user's story in both the public collection and
        the author mirror, in one batch.

        Raises:
            AuthorizationError: Updating a story owned by someone else
            google.api_core.exceptions.NotFound: Updating a missing story

        Returns:
            The story id (shared by both copies)
        """
        require_ids(user_id=user_id)
        batch = self.db.batch()

        if story_id:
            language = story_data.get('language')
            public_ref = self._public(language).document(story_id)
            snapshot = public_ref.get()
            if not snapshot.exists:
                raise google_exceptions.NotFound(f"Story {story_id} not found.")
            if (snapshot.to_dict() or {}).get('authorId') != user_id:
                raise AuthorizationError("You can only edit your own stories.")

            changes = changed_fields(validate(StoryUpdate, story_data))
            changes['updatedAt'] = firestore.SERVER_TIMESTAMP
            batch.update(public_ref, changes)
            batch.update(self._mirror(user_id).document(story_id), changes)
            batch.commit()
            logger.info("User %s updated story %s", user_id, story_id)
            return story_id

        data = validate(StoryInput, story_data)
        payload = data.model_dump()
        payload.update({
            'authorId': user_id,
            'authorName': author_name or story_data.get('authorName') or '',
            'likeCount': 0,
            'commentCount': 0,
            'createdAt': firestore.SERVER_TIMESTAMP,
            'updatedAt': firestore.SERVER_TIMESTAMP,
        })
        if author_photo_url:
            payload['authorPhotoURL'] = author_photo_url

        public_ref = self._public(data.language).document()
        mirror_ref = self._mirror(user_id).document(public_ref.id)
        batch.set(public_ref, payload)
        batch.set(mirror_ref, payload)
        batch.commit()

        logger.info("User %s created story %s (%s)", user_id, public_ref.id, data.language)
        return public_ref.id

    def delete_story(self, story: StoryRef) -> None:
        """
        ADMIN: delete a story from every location in one batch.

        The author mirror is skipped for admin stories, which have none.
        """
        story = self._as_story(story)
        require_ids(story_id=story.id, language=story.language, author_id=story.authorId)

        batch = self.db.batch()
        batch.delete(self._public(story.language).document(story.id))
        if story.authorId != ADMIN_AUTHOR_ID:
            batch.delete(self._mirror(story.authorId).document(story.id))
        batch.commit()
        logger.info("Deleted story %s (%s) by %s", story.id, story.language, story.authorId)

    def delete_user_story(self, user_id: str, story: StoryRef) -> None:
        """
        Delete a story on behalf of its author.

        The stored authorId wins over the one passed in. Nothing is written
        when the caller is not the author.

        Raises:
            AuthorizationError: user_id is not the story's author
        """
        story = self._as_story(story)
        require_ids(user_id=user_id, story_id=story.id, language=story.language)

        stored = self.get_story_by_id(story.language, story.id)
        if stored is not None:
            story = stored

        if user_id != story.authorId:
            logger.warning("User %s tried to delete story %s owned by %s",
                           user_id, story.id, story.authorId)
            raise AuthorizationError("You can only delete your own stories.")

        self.delete_story(story)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_story_by_id(self, language: str, story_id: str) -> Optional[Story]:
        """Fetch a public story, or None if there is none."""
        if not language or not story_id:
            return None
        snapshot = self._public(language).document(story_id).get()
        if not snapshot.exists:
            return None
        return Story.from_snapshot(snapshot)

    def _language_query(self, language: str, published_only: bool):
        query = self._public(language)
        if published_only:
            query = query.where(filter=firestore.FieldFilter('isPublished', '==', True))
        return query.order_by('createdAt', direction=firestore.Query.DESCENDING)

    def get_stories(self, language: str, published_only: bool = True) -> List[Story]:
        """
        Stories of one language, newest first.

        Args:
            published_only: False includes drafts (admin views)
        """
        return [Story.from_snapshot(doc)
                for doc in self._language_query(language, published_only).stream()]

    def watch_stories(self, language: str, callback: Callable[[List[Story]], None],
                      published_only: bool = True) -> Subscription:
        return watch_query(self._language_query(language, published_only), Story,
                           callback, f"stories in {language}")

    def _moderation_query(self):
        # Inequality on authorId forces authorId to be the first sort key
        return (self.db.collection_group('stories')
                .where(filter=firestore.FieldFilter('isPublished', '==', True))
                .where(filter=firestore.FieldFilter('authorId', '!=', ADMIN_AUTHOR_ID))
                .order_by('authorId')
                .order_by('createdAt', direction=firestore.Query.DESCENDING))

    def get_all_published_user_stories(self) -> List[Story]:
        """
        MODERATION: published user stories across all languages.

        Ordered by authorId, then newest first. Author mirrors are left
        out so every story appears once.
        """
        return [Story.from_snapshot(doc)
                for doc in self._moderation_query().stream()
                if is_public_copy(doc)]

    def watch_all_published_user_stories(self, callback: Callable[[List[Story]], None]) -> Subscription:
        return watch_query(self._moderation_query(), Story, callback,
                           "published user stories", include=is_public_copy)

    def get_stories_by_author(self, author_id: str) -> List[Story]:
        """All stories of one author (drafts included), newest first."""
        query = self._mirror(author_id).order_by('createdAt', direction=firestore.Query.DESCENDING)
        return [Story.from_snapshot(doc) for doc in query.stream()]

    def watch_stories_by_author(self, author_id: str,
                                callback: Callable[[List[Story]], None]) -> Subscription:
        query = self._mirror(author_id).order_by('createdAt', direction=firestore.Query.DESCENDING)
        return watch_query(query, Story, callback, f"stories by {author_id}")

    # =========================================================================
    # Maintenance
    # =========================================================================

    def reconcile_author_mirrors(self, author_id: str = None) -> Dict[str, int]:
        """
        Bring author mirrors back in line with the public copies.

        Rewrites mirrors that differ from (or are missing for) their public
        copy and deletes mirrors whose public copy is gone. Safe to run
        repeatedly.

        Args:
            author_id: Limit the run to one author

        Returns:
            {'repaired': n, 'removed': n}
        """
        query = self.db.collection_group('stories')
        if author_id:
            query = query.where(filter=firestore.FieldFilter('authorId', '==', author_id))

        public_docs = {}
        mirror_docs = {}
        for doc in query.stream():
            data = doc.to_dict() or {}
            if data.get('authorId') == ADMIN_AUTHOR_ID:
                continue
            if is_public_copy(doc):
                public_docs[(data.get('authorId'), doc.id)] = doc
            elif is_author_mirror(doc):
                mirror_docs[(_path_parts(doc)[1], doc.id)] = doc

        writes = []
        for (owner, story_id), public_doc in public_docs.items():
            if not owner:
                continue
            public_data = public_doc.to_dict()
            mirror_doc = mirror_docs.get((owner, story_id))
            if mirror_doc is None or mirror_doc.to_dict() != public_data:
                writes.append(('set', self._mirror(owner).document(story_id), public_data))

        for key, mirror_doc in mirror_docs.items():
            if key not in public_docs:
                writes.append(('delete', mirror_doc.reference, None))

        for start in range(0, len(writes), MAX_BATCH_WRITES):
            batch = self.db.batch()
            for op, ref, data in writes[start:start + MAX_BATCH_WRITES]:
                if op == 'set':
                    batch.set(ref, data)
                else:
                    batch.delete(ref)
            batch.commit()

        result = {
            'repaired': sum(1 for op, _, _ in writes if op == 'set'),
            'removed': sum(1 for op, _, _ in writes if op == 'delete'),
        }
        logger.info("Reconciled author mirrors: %s", result)
        return result
