import pytest
from google.api_core import exceptions as google_exceptions

from wordlune.errors import ValidationError
from wordlune.stores import ListWord, PersonalWord

USER = 'user-1'
LANG = 'English'


def word(text, **extra):
    data = {'word': text, 'meaning': f'{text} meaning', 'example': f'An example with {text}.'}
    data.update(extra)
    return data


def stored_count(db, list_id):
    return db.collection('data', USER, LANG).document(list_id).get().to_dict()['wordCount']


def actual_words(db, list_id):
    return len(db.collection('data', USER, LANG, list_id, 'words').list_documents())


@pytest.fixture
def list_id(list_store):
    return list_store.create_list(USER, LANG, 'Travel')


# -----------------
# Lists
# -----------------

def test_create_list_starts_empty(list_store, list_id):
    details = list_store.get_list_details(USER, LANG, list_id)

    assert details.name == 'Travel'
    assert details.wordCount == 0
    assert details.createdAt is not None


def test_create_list_strips_and_checks_name(list_store):
    list_id = list_store.create_list(USER, LANG, '  Food  ')
    assert list_store.get_list_details(USER, LANG, list_id).name == 'Food'

    with pytest.raises(ValidationError):
        list_store.create_list(USER, LANG, ' x ')


def test_lists_are_scoped_by_language_and_newest_first(list_store, db):
    first = list_store.create_list(USER, LANG, 'First')
    second = list_store.create_list(USER, LANG, 'Second')
    list_store.create_list(USER, 'Spanish', 'Otra')

    assert [l.id for l in list_store.get_lists(USER, LANG)] == [second, first]
    assert [l.name for l in list_store.get_lists(USER, 'Spanish')] == ['Otra']


def test_get_list_details_missing_returns_none(list_store):
    assert list_store.get_list_details(USER, LANG, 'nope') is None


def test_rename_list(list_store, list_id):
    list_store.rename_list(USER, LANG, list_id, 'Holidays')
    assert list_store.get_list_details(USER, LANG, list_id).name == 'Holidays'


def test_missing_ids_are_rejected(list_store):
    with pytest.raises(ValidationError, match="Missing user_id"):
        list_store.get_lists('', LANG)
    with pytest.raises(ValidationError, match="Missing language"):
        list_store.get_lists(USER, '')


# -----------------
# wordCount invariant
# -----------------

def test_word_count_matches_words_after_every_call(list_store, db, list_id):
    a = list_store.add_word_to_list(USER, LANG, list_id, word('apple'))
    assert stored_count(db, list_id) == actual_words(db, list_id) == 1

    ids = list_store.add_multiple_words_to_list(USER, LANG, list_id, [
        {'text': 'pear', 'exampleSentence': 'A ripe pear.', 'meaning': 'armut'},
        {'text': 'plum', 'exampleSentence': 'A sour plum.', 'meaning': 'erik'},
        {'text': 'fig', 'exampleSentence': 'A dried fig.', 'meaning': 'incir'},
    ], 'Turkish')
    assert stored_count(db, list_id) == actual_words(db, list_id) == 4

    list_store.delete_word_from_list(USER, LANG, list_id, a)
    assert stored_count(db, list_id) == actual_words(db, list_id) == 3

    list_store.delete_multiple_words_from_list(USER, LANG, list_id, ids[:2] + [ids[0]])
    assert stored_count(db, list_id) == actual_words(db, list_id) == 1


def test_deleting_a_missing_word_changes_nothing(list_store, db, list_id):
    kept = list_store.add_word_to_list(USER, LANG, list_id, word('apple'))
    before = db.dump()

    with pytest.raises(google_exceptions.NotFound):
        list_store.delete_multiple_words_from_list(USER, LANG, list_id, [kept, 'ghost'])

    assert db.dump() == before
    assert stored_count(db, list_id) == actual_words(db, list_id) == 1


def test_adding_to_a_missing_list_writes_nothing(list_store, db):
    with pytest.raises(google_exceptions.NotFound):
        list_store.add_word_to_list(USER, LANG, 'ghost-list', word('apple'))

    assert db.paths('data/') == []


def test_bulk_add_rejects_empty_input(list_store, db, list_id):
    commits = db.commits

    with pytest.raises(ValidationError):
        list_store.add_multiple_words_to_list(USER, LANG, list_id, [], 'Turkish')

    assert db.commits == commits
    assert stored_count(db, list_id) == 0


def test_bulk_add_maps_processed_words(list_store, list_id):
    list_store.add_multiple_words_to_list(USER, LANG, list_id, [
        {'text': 'ephemeral', 'exampleSentence': 'Fame is ephemeral.', 'meaning': 'geçici'},
    ], 'Turkish')

    [entry] = list_store.get_words_for_list(USER, LANG, list_id)
    assert entry.word == 'ephemeral'
    assert entry.example == 'Fame is ephemeral.'
    assert entry.meaning == 'geçici'
    assert entry.language == 'Turkish'
    assert entry.category == 'Uncategorized'


def test_bulk_add_rejects_too_many_words(list_store, list_id):
    records = [{'text': f'w{i}', 'exampleSentence': 'Some sentence.', 'meaning': 'm'}
               for i in range(500)]

    with pytest.raises(ValidationError, match="499"):
        list_store.add_multiple_words_to_list(USER, LANG, list_id, records, 'Turkish')


def test_delete_multiple_requires_ids(list_store, list_id):
    with pytest.raises(ValidationError):
        list_store.delete_multiple_words_from_list(USER, LANG, list_id, [])


# -----------------
# Word updates and reads
# -----------------

def test_update_word_leaves_count_alone(list_store, db, list_id):
    word_id = list_store.add_word_to_list(USER, LANG, list_id, word('apple'))

    changes = list_store.update_word_in_list(
        USER, LANG, list_id, word_id, {'category': 'Very Good', 'meaning': ' elma '})

    assert changes == {'category': 'Very Good', 'meaning': 'elma'}
    stored = list_store.get_word(USER, LANG, list_id, word_id)
    assert stored.category == 'Very Good'
    assert stored.meaning == 'elma'
    assert stored_count(db, list_id) == 1


def test_update_word_rejects_unknown_category(list_store, list_id):
    word_id = list_store.add_word_to_list(USER, LANG, list_id, word('apple'))

    with pytest.raises(ValidationError, match="category"):
        list_store.update_word_in_list(USER, LANG, list_id, word_id, {'category': 'Great'})


def test_update_word_needs_a_field(list_store, list_id):
    word_id = list_store.add_word_to_list(USER, LANG, list_id, word('apple'))

    with pytest.raises(ValidationError, match="No fields"):
        list_store.update_word_in_list(USER, LANG, list_id, word_id, {'language': 'French'})


def test_word_example_minimum_length(list_store, list_id):
    with pytest.raises(ValidationError, match="example"):
        list_store.add_word_to_list(USER, LANG, list_id, word('apple', example='ab'))


def test_all_words_from_all_lists_are_tagged_and_newest_first(list_store, list_id):
    other = list_store.create_list(USER, LANG, 'Work')
    list_store.add_word_to_list(USER, LANG, list_id, word('apple'))
    list_store.add_word_to_list(USER, LANG, other, word('desk'))
    list_store.add_word_to_list(USER, LANG, list_id, word('pear'))

    words = list_store.get_all_words_from_all_lists(USER, LANG)

    assert [w.word for w in words] == ['pear', 'desk', 'apple']
    assert words[1].to_dict()['listName'] == 'Work'
    assert words[0].listId == list_id


# -----------------
# Cascade delete
# -----------------

def test_delete_list_removes_words(list_store, db, list_id):
    list_store.add_word_to_list(USER, LANG, list_id, word('apple'))
    list_store.add_word_to_list(USER, LANG, list_id, word('pear'))
    keep = list_store.create_list(USER, LANG, 'Keep')

    deleted = list_store.delete_list(USER, LANG, list_id)

    assert deleted == 2
    assert list_store.get_list_details(USER, LANG, list_id) is None
    assert db.paths(f'data/{USER}/{LANG}/{list_id}') == []
    assert list_store.get_list_details(USER, LANG, keep) is not None


def test_delete_large_list_in_chunks(list_store, db, list_id):
    records = [{'text': f'w{i}', 'exampleSentence': 'Some sentence.', 'meaning': 'm'}
               for i in range(499)]
    list_store.add_multiple_words_to_list(USER, LANG, list_id, records, 'Turkish')
    list_store.add_multiple_words_to_list(USER, LANG, list_id, records[:10], 'Turkish')
    commits = db.commits

    assert list_store.delete_list(USER, LANG, list_id) == 509

    assert db.commits == commits + 2
    assert db.paths(f'data/{USER}/{LANG}/{list_id}') == []


# -----------------
# Live updates
# -----------------

def test_watch_words_delivers_updates_until_unsubscribed(list_store, list_id):
    seen = []
    subscription = list_store.watch_words_for_list(
        USER, LANG, list_id, lambda words: seen.append([w.word for w in words]))

    list_store.add_word_to_list(USER, LANG, list_id, word('apple'))
    subscription.unsubscribe()
    list_store.add_word_to_list(USER, LANG, list_id, word('pear'))

    assert seen == [[], ['apple']]
    assert not subscription.active


def test_watch_lists_reports_counts(list_store, list_id):
    seen = []
    subscription = list_store.watch_lists(
        USER, LANG, lambda lists: seen.append([(l.name, l.wordCount) for l in lists]))

    list_store.add_word_to_list(USER, LANG, list_id, word('apple'))
    subscription.unsubscribe()

    assert seen[-1] == [('Travel', 1)]


# -----------------
# Conversions
# -----------------

def test_personal_word_to_list_word():
    personal = PersonalWord(id='p1', text='apple', category='Very Good',
                            exampleSentence='I ate an apple.', meaning='elma')

    converted = ListWord.from_personal_word(personal, 'English')

    assert converted.to_input() == {
        'word': 'apple',
        'meaning': 'elma',
        'example': 'I ate an apple.',
        'language': 'English',
        'category': 'Very Good',
    }


def test_list_only_categories_become_good():
    for category in ('Uncategorized', 'Repeat'):
        list_word = ListWord(id='w1', word='apple', meaning='elma',
                             example='I ate an apple.', category=category)
        assert PersonalWord.from_list_word(list_word).category == 'Good'

    list_word = ListWord(id='w1', word='apple', category='Bad')
    assert PersonalWord.from_list_word(list_word).category == 'Bad'
