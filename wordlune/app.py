"""
WordLune - Flask Web Application

Main entry point for the JSON API.

Services:
- Gemini: translations, example sentences, IPA, bulk word details
- Firestore: lists, personal words, stories, accounts
- Firebase Authentication: ID tokens on every /api route except
  /api/ai and /api/status
"""

import logging
from functools import wraps
from typing import Dict

from flask import Flask, request, jsonify, g
from firebase_admin import auth as firebase_auth, exceptions as firebase_exceptions
from google.api_core import exceptions as google_exceptions

from .config import VERSION, HOST, PORT, LOG_LEVEL, LOG_FORMAT, GEMINI_MODEL
from .enrichment import WordEnricher
from .errors import (
    AuthenticationError, AuthorizationError, DatabaseUnavailableError,
    GenerationError, ModelUnavailableError, ValidationError,
)
from .stores import (
    get_client, ListStore, ListWord, PersonalWordStore, PersonalWord,
    StoryStore, UserStore,
)

logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)
app.json.sort_keys = False

# Global instances (lazy loaded)
_enricher = None


def get_db():
    """Get the shared Firestore client."""
    return get_client()


def get_enricher():
    """Get or create word enricher instance."""
    global _enricher
    if _enricher is None:
        _enricher = WordEnricher()
    return _enricher


def get_list_store():
    return ListStore(get_db())


def get_word_store():
    return PersonalWordStore(get_db())


def get_story_store():
    return StoryStore(get_db())


def get_user_store():
    return UserStore(get_db())


def _body() -> Dict:
    return request.get_json(silent=True) or {}


def _error(message: str, status: int):
    return jsonify({'success': False, 'error': message}), status


# =============================================================================
# AUTHENTICATION
# =============================================================================

def verify_token(id_token: str) -> Dict:
    """
    Verify a Firebase ID token and return its claims.

    Raises:
        AuthenticationError: Token is missing, malformed, expired or revoked
    """
    get_db()  # makes sure the Firebase app is initialized
    try:
        return firebase_auth.verify_id_token(id_token)
    except (ValueError, firebase_exceptions.FirebaseError) as e:
        logger.info("Rejected ID token: %s", e)
        raise AuthenticationError("Invalid or expired ID token.")


def require_user(view):
    """Reject requests without a valid token or from banned users."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        header = request.headers.get('Authorization', '')
        if not header.startswith('Bearer ') or not header[7:].strip():
            raise AuthenticationError("Missing bearer token.")

        claims = verify_token(header[7:].strip())
        g.user_id = claims['uid']
        g.claims = claims

        if get_user_store().is_banned(g.user_id):
            raise AuthorizationError("This account is banned.")
        return view(*args, **kwargs)
    return wrapper


def admin_required(view):
    """require_user plus an entry in the admins collection."""
    @wraps(view)
    @require_user
    def wrapper(*args, **kwargs):
        if not get_user_store().is_admin(g.user_id):
            raise AuthorizationError("Administrator access required.")
        return view(*args, **kwargs)
    return wrapper


def current_language() -> str:
    """Learning language from ?language= or the user's settings."""
    language = request.args.get('language', '').strip()
    if language:
        return language
    return get_user_store().get_settings(g.user_id).sourceLanguage


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({'success': False, 'error': str(e), 'details': e.errors}), 400


@app.errorhandler(AuthenticationError)
def handle_authentication_error(e):
    return _error(str(e), 401)


@app.errorhandler(AuthorizationError)
def handle_authorization_error(e):
    return _error(str(e), 403)


@app.errorhandler(google_exceptions.NotFound)
def handle_not_found(e):
    return _error(e.message or "Not found.", 404)


@app.errorhandler(google_exceptions.AlreadyExists)
@app.errorhandler(google_exceptions.Conflict)
def handle_conflict(e):
    return _error(e.message or "Conflicting write.", 409)


@app.errorhandler(GenerationError)
@app.errorhandler(ModelUnavailableError)
def handle_model_error(e):
    logger.error("AI request failed: %s", e)
    return _error(str(e), 502)


@app.errorhandler(DatabaseUnavailableError)
def handle_database_unavailable(e):
    return _error("Database not available. Check the Firebase configuration.", 503)


# =============================================================================
# ROUTES - AI
# =============================================================================

@app.route('/api/ai', methods=['POST'])
def api_ai():
    """Run one enrichment action: {action, ...params}."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return _error('Invalid action', 400)

    params = dict(body)
    action = params.pop('action', None)

    if action not in WordEnricher.ACTIONS:
        return _error('Invalid action', 400)

    try:
        result = get_enricher().run(action, params)
    except ValidationError as e:
        return _error(str(e), 400)
    except Exception:
        logger.exception("AI API error (%s)", action)
        return _error('Internal server error', 500)

    return jsonify({'success': True, 'data': result})


# =============================================================================
# ROUTES - API STATUS
# =============================================================================

@app.route('/api/status')
def api_status():
    """Database and model availability."""
    try:
        get_db()
        database = {'status': 'ok', 'message': 'Firestore connected.'}
    except DatabaseUnavailableError as e:
        database = {'status': 'unavailable', 'message': str(e)}

    return jsonify({
        'version': VERSION,
        'database': database,
        'model': get_enricher().client.check_status().to_dict(),
    })


# =============================================================================
# ROUTES - LISTS
# =============================================================================

@app.route('/api/lists', methods=['GET'])
@require_user
def api_lists():
    language = current_language()
    lists = get_list_store().get_lists(g.user_id, language)
    return jsonify({
        'language': language,
        'count': len(lists),
        'lists': [l.to_dict() for l in lists],
    })


@app.route('/api/lists', methods=['POST'])
@require_user
def api_lists_create():
    list_id = get_list_store().create_list(g.user_id, current_language(), _body().get('name', ''))
    return jsonify({'success': True, 'id': list_id})


@app.route('/api/lists/<list_id>', methods=['GET'])
@require_user
def api_list_get(list_id):
    language = current_language()
    store = get_list_store()
    user_list = store.get_list_details(g.user_id, language, list_id)
    if user_list is None:
        return _error('List not found', 404)

    words = store.get_words_for_list(g.user_id, language, list_id)
    return jsonify({
        'success': True,
        'list': user_list.to_dict(),
        'words': [w.to_dict() for w in words],
    })


@app.route('/api/lists/<list_id>', methods=['PATCH'])
@require_user
def api_list_rename(list_id):
    get_list_store().rename_list(g.user_id, current_language(), list_id, _body().get('name', ''))
    return jsonify({'success': True})


@app.route('/api/lists/<list_id>', methods=['DELETE'])
@require_user
def api_list_delete(list_id):
    deleted = get_list_store().delete_list(g.user_id, current_language(), list_id)
    return jsonify({'success': True, 'deletedWords': deleted})


@app.route('/api/lists/<list_id>/words', methods=['GET'])
@require_user
def api_list_words(list_id):
    words = get_list_store().get_words_for_list(g.user_id, current_language(), list_id)
    return jsonify({
        'count': len(words),
        'words': [w.to_dict() for w in words],
    })


@app.route('/api/lists/<list_id>/words', methods=['POST'])
@require_user
def api_list_words_add(list_id):
    word_id = get_list_store().add_word_to_list(g.user_id, current_language(), list_id, _body())
    return jsonify({'success': True, 'id': word_id})


@app.route('/api/lists/<list_id>/words/bulk', methods=['POST'])
@require_user
def api_list_words_bulk(list_id):
    """
    Enrich raw words with the AI and add the results to a list.

    Words the model skipped are reported back in 'skipped'.
    """
    data = _body()
    language = current_language()
    settings = get_user_store().get_settings(g.user_id)
    source_language = data.get('sourceLanguage') or settings.sourceLanguage
    target_language = data.get('targetLanguage') or settings.targetLanguage

    result = get_enricher().bulk_generate_word_details(
        data.get('words') or [], source_language, target_language)
    processed = result['processedWords']
    if not processed:
        return _error('The AI returned no usable words.', 502)

    ids = get_list_store().add_multiple_words_to_list(
        g.user_id, language, list_id, processed, target_language)

    done = {p['text'].lower() for p in processed}
    skipped = [w for w in data.get('words') or [] if w.strip().lower() not in done]

    return jsonify({
        'success': True,
        'ids': ids,
        'processedWords': processed,
        'skipped': skipped,
    })


@app.route('/api/lists/<list_id>/words/<word_id>', methods=['PATCH'])
@require_user
def api_list_word_update(list_id, word_id):
    changes = get_list_store().update_word_in_list(
        g.user_id, current_language(), list_id, word_id, _body())
    return jsonify({'success': True, 'updated': changes})


@app.route('/api/lists/<list_id>/words/<word_id>', methods=['DELETE'])
@require_user
def api_list_word_delete(list_id, word_id):
    get_list_store().delete_word_from_list(g.user_id, current_language(), list_id, word_id)
    return jsonify({'success': True})


@app.route('/api/lists/<list_id>/words/delete', methods=['POST'])
@require_user
def api_list_words_delete(list_id):
    deleted = get_list_store().delete_multiple_words_from_list(
        g.user_id, current_language(), list_id, _body().get('wordIds') or [])
    return jsonify({'success': True, 'deleted': deleted})


@app.route('/api/lists/<list_id>/words/<word_id>/save-to-my-words', methods=['POST'])
@require_user
def api_list_word_save_personal(list_id, word_id):
    """Copy a list word into the personal word bank."""
    word = get_list_store().get_word(g.user_id, current_language(), list_id, word_id)
    if word is None:
        return _error('Word not found', 404)

    new_id = get_word_store().add_word(g.user_id, PersonalWord.from_list_word(word).to_input())
    return jsonify({'success': True, 'id': new_id})


@app.route('/api/words/all')
@require_user
def api_words_all():
    words = get_list_store().get_all_words_from_all_lists(g.user_id, current_language())
    return jsonify({
        'count': len(words),
        'words': [w.to_dict() for w in words],
    })


# =============================================================================
# ROUTES - MY WORDS
# =============================================================================

@app.route('/api/my-words', methods=['GET'])
@require_user
def api_my_words():
    words = get_word_store().get_words(
        g.user_id,
        category=request.args.get('category') or None,
        search=request.args.get('search') or None,
    )
    return jsonify({
        'count': len(words),
        'words': [w.to_dict() for w in words],
    })


@app.route('/api/my-words', methods=['POST'])
@require_user
def api_my_words_add():
    word_id = get_word_store().add_word(g.user_id, _body())
    return jsonify({'success': True, 'id': word_id})


@app.route('/api/my-words/stats')
@require_user
def api_my_words_stats():
    days = request.args.get('days', 7, type=int)
    if days < 1 or days > 366:
        return _error('days must be between 1 and 366', 400)
    return jsonify(get_word_store().get_stats(g.user_id, days=days))


@app.route('/api/my-words/<word_id>', methods=['PATCH'])
@require_user
def api_my_word_update(word_id):
    changes = get_word_store().update_word(g.user_id, word_id, _body())
    return jsonify({'success': True, 'updated': changes})


@app.route('/api/my-words/<word_id>', methods=['DELETE'])
@require_user
def api_my_word_delete(word_id):
    get_word_store().delete_word(g.user_id, word_id)
    return jsonify({'success': True})


@app.route('/api/my-words/<word_id>/copy-to-list', methods=['POST'])
@require_user
def api_my_word_copy_to_list(word_id):
    """Copy a personal word into one of the user's lists."""
    list_id = _body().get('listId', '')
    word = get_word_store().get_word(g.user_id, word_id)
    if word is None:
        return _error('Word not found', 404)
    # List words always carry a meaning
    if not word.meaning:
        return _error('Add a meaning to this word before copying it to a list', 400)

    language = current_language()
    new_id = get_list_store().add_word_to_list(
        g.user_id, language, list_id, ListWord.from_personal_word(word, language).to_input())
    return jsonify({'success': True, 'id': new_id})


# =============================================================================
# ROUTES - STORIES
# =============================================================================

@app.route('/api/stories')
@require_user
def api_stories():
    language = current_language()
    stories = get_story_store().get_stories(language)
    return jsonify({
        'language': language,
        'count': len(stories),
        'stories': [s.to_dict() for s in stories],
    })


@app.route('/api/stories/<language>/<story_id>')
@require_user
def api_story_get(language, story_id):
    story = get_story_store().get_story_by_id(language, story_id)
    # Drafts are only visible to their author
    if story is None or (not story.isPublished and story.authorId != g.user_id):
        return _error('Story not found', 404)
    return jsonify({'success': True, 'story': story.to_dict()})


@app.route('/api/my-stories', methods=['GET'])
@require_user
def api_my_stories():
    stories = get_story_store().get_stories_by_author(g.user_id)
    return jsonify({
        'count': len(stories),
        'stories': [s.to_dict() for s in stories],
    })


@app.route('/api/my-stories', methods=['POST'])
@require_user
def api_my_stories_create():
    user = get_user_store().get_user(g.user_id)
    author_name = (user.username or user.displayName) if user else g.claims.get('name', '')
    photo_url = user.photoURL if user else g.claims.get('picture')

    story_id = get_story_store().upsert_user_story(
        g.user_id, _body(), author_name=author_name, author_photo_url=photo_url)
    return jsonify({'success': True, 'id': story_id})


@app.route('/api/my-stories/<language>/<story_id>', methods=['PUT'])
@require_user
def api_my_story_update(language, story_id):
    data = dict(_body(), language=language)
    get_story_store().upsert_user_story(g.user_id, data, story_id=story_id)
    return jsonify({'success': True, 'id': story_id})


@app.route('/api/my-stories/<language>/<story_id>', methods=['DELETE'])
@require_user
def api_my_story_delete(language, story_id):
    store = get_story_store()
    story = store.get_story_by_id(language, story_id)
    if story is None:
        return _error('Story not found', 404)
    store.delete_user_story(g.user_id, story)
    return jsonify({'success': True})


# =============================================================================
# ROUTES - ACCOUNT
# =============================================================================

@app.route('/api/me', methods=['GET'])
@require_user
def api_me():
    users = get_user_store()
    user = users.get_user(g.user_id)
    return jsonify({
        'user': user.to_dict() if user else None,
        'isAdmin': users.is_admin(g.user_id),
        'settings': users.get_settings(g.user_id).to_dict(),
    })


@app.route('/api/me', methods=['POST'])
@require_user
def api_me_create():
    """Create the profile after registration."""
    data = _body()
    user = get_user_store().create_initial_user_documents(
        g.user_id,
        data.get('username', ''),
        data.get('displayName') or g.claims.get('name', ''),
        g.claims.get('email', ''),
        photo_url=g.claims.get('picture'),
    )
    return jsonify({'success': True, 'user': user.to_dict()})


@app.route('/api/me/username', methods=['POST'])
@require_user
def api_me_username():
    username = get_user_store().update_username(g.user_id, _body().get('username', ''))
    return jsonify({'success': True, 'username': username})


@app.route('/api/me/settings', methods=['GET'])
@require_user
def api_me_settings():
    return jsonify(get_user_store().get_settings(g.user_id).to_dict())


@app.route('/api/me/settings', methods=['PUT'])
@require_user
def api_me_settings_save():
    settings = get_user_store().save_settings(g.user_id, _body())
    return jsonify({'success': True, 'settings': settings.to_dict()})


@app.route('/api/me/login', methods=['POST'])
@require_user
def api_me_login():
    get_user_store().log_login_history(
        g.user_id,
        user_agent=request.headers.get('User-Agent', ''),
        platform=_body().get('platform', ''),
    )
    return jsonify({'success': True})


@app.route('/api/me/login', methods=['GET'])
@require_user
def api_me_login_history():
    history = get_user_store().get_login_history(g.user_id)
    return jsonify({'count': len(history), 'history': history})


# =============================================================================
# ROUTES - ADMIN
# =============================================================================

@app.route('/api/admin/moderation')
@admin_required
def api_admin_moderation():
    """Published user stories across all languages."""
    stories = get_story_store().get_all_published_user_stories()
    return jsonify({
        'count': len(stories),
        'stories': [s.to_dict() for s in stories],
    })


@app.route('/api/admin/stories', methods=['GET'])
@admin_required
def api_admin_stories():
    """All stories of a language, drafts included."""
    language = current_language()
    stories = get_story_store().get_stories(language, published_only=False)
    return jsonify({
        'language': language,
        'count': len(stories),
        'stories': [s.to_dict() for s in stories],
    })


@app.route('/api/admin/stories', methods=['POST'])
@admin_required
def api_admin_stories_create():
    story_id = get_story_store().upsert_story(_body())
    return jsonify({'success': True, 'id': story_id})


@app.route('/api/admin/stories/<language>/<story_id>', methods=['PUT'])
@admin_required
def api_admin_story_update(language, story_id):
    get_story_store().upsert_story(dict(_body(), language=language), story_id=story_id)
    return jsonify({'success': True, 'id': story_id})


@app.route('/api/admin/stories/<language>/<story_id>', methods=['DELETE'])
@admin_required
def api_admin_story_delete(language, story_id):
    store = get_story_store()
    story = store.get_story_by_id(language, story_id)
    if story is None:
        return _error('Story not found', 404)
    store.delete_story(story)
    return jsonify({'success': True})


@app.route('/api/admin/users/<user_id>/ban', methods=['POST'])
@admin_required
def api_admin_ban(user_id):
    if user_id == g.user_id:
        return _error('You cannot ban yourself', 400)

    until = get_user_store().ban_user(user_id, _body().get('duration', ''))
    return jsonify({
        'success': True,
        'bannedUntil': until.isoformat() if until else None,
    })


@app.route('/api/admin/users/<user_id>/ban', methods=['DELETE'])
@admin_required
def api_admin_unban(user_id):
    get_user_store().unban_user(user_id)
    return jsonify({'success': True})


# =============================================================================
# MAIN
# =============================================================================

def main():
    """Run the application."""
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    print(f"""
╔══════════════════════════════════════════════════════════╗
║         WordLune API v{VERSION:<35}║
║   Vocabulary lists, AI enrichment and leveled stories    ║
╠══════════════════════════════════════════════════════════╣
║  Services:                                               ║
║  • Gemini ({GEMINI_MODEL:<20}): word enrichment         ║
║  • Firestore: lists, words, stories, accounts            ║
║  • Firebase Auth: ID token verification                  ║
╚══════════════════════════════════════════════════════════╝
    """)

    print(f"🌐 Starting server at http://{HOST}:{PORT}")
    print("   Press Ctrl+C to stop\n")

    app.run(host=HOST, port=PORT, debug=False, threaded=True)


if __name__ == '__main__':
    main()
