import pytest

from wordlune.errors import ValidationError
from wordlune.utils import UserSettings


def test_defaults():
    assert UserSettings().to_dict() == {
        'sourceLanguage': 'English',
        'targetLanguage': 'Turkish',
        'uiLanguage': 'tr',
        'storyListId': '',
        'lastSelectedListId': '',
        'theme': 'light',
    }


def test_from_dict_ignores_unknown_and_null_values():
    settings = UserSettings.from_dict({'theme': 'dark', 'storyListId': None, 'legacy': 1})

    assert settings.theme == 'dark'
    assert settings.storyListId == ''


def test_merged_returns_a_new_object():
    original = UserSettings()

    updated = original.merged({'sourceLanguage': 'Spanish', 'lastSelectedListId': 'list-1'})

    assert updated.sourceLanguage == 'Spanish'
    assert updated.lastSelectedListId == 'list-1'
    assert original.sourceLanguage == 'English'


@pytest.mark.parametrize('updates', [
    {'sourceLanguage': 'Klingon'},
    {'targetLanguage': 'English'},
    {'uiLanguage': 'de'},
    {'theme': 'sepia'},
    {'colour': 'blue'},
])
def test_merged_rejects_invalid_updates(updates):
    with pytest.raises(ValidationError):
        UserSettings().merged(updates)
