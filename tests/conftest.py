import json

import pytest

from wordlune import app as app_module
from wordlune.enrichment import GenerativeModelClient, WordEnricher
from wordlune.enrichment import model_client
from wordlune.stores import (
    set_client, ListStore, PersonalWordStore, StoryStore, UserStore,
)

from .fakes import FakeFirestore


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeGemini:
    """
    Replaces requests.post for the model client.

    Queue answers with reply()/reply_text()/reply_status(); every call is
    recorded in `calls` as (url, headers, json body).
    """

    def __init__(self):
        self.calls = []
        self._responses = []

    def reply(self, obj):
        self.reply_text(json.dumps(obj))

    def reply_text(self, text):
        self._responses.append(FakeResponse(200, {
            'candidates': [{
                'content': {'role': 'model', 'parts': [{'text': text}]},
                'finishReason': 'STOP',
            }],
        }))

    def reply_empty(self):
        self._responses.append(FakeResponse(200, {
            'candidates': [],
            'promptFeedback': {'blockReason': 'SAFETY'},
        }))

    def reply_status(self, status_code):
        self._responses.append(FakeResponse(status_code, {'error': {'code': status_code}}))

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append((url, headers, json))
        if not self._responses:
            raise AssertionError(f"Unexpected model call: {url}")
        return self._responses.pop(0)

    @property
    def prompts(self):
        return [body['contents'][0]['parts'][0]['text'] for _, _, body in self.calls]


@pytest.fixture
def db():
    client = FakeFirestore()
    set_client(client)
    yield client
    set_client(None)


@pytest.fixture
def list_store(db):
    return ListStore(db)


@pytest.fixture
def word_store(db):
    return PersonalWordStore(db)


@pytest.fixture
def story_store(db):
    return StoryStore(db)


@pytest.fixture
def user_store(db):
    return UserStore(db)


@pytest.fixture
def gemini(monkeypatch):
    fake = FakeGemini()
    monkeypatch.setattr(model_client.requests, 'post', fake.post)
    return fake


@pytest.fixture
def enricher(gemini):
    return WordEnricher(GenerativeModelClient(api_key='test-key', model='test-model'))


@pytest.fixture
def client(db, enricher, monkeypatch):
    """Flask test client; the bearer token is taken as the user id."""
    def verify_token(token):
        return {'uid': token, 'email': f'{token}@example.com', 'name': token.title()}

    monkeypatch.setattr(app_module, 'verify_token', verify_token)
    monkeypatch.setattr(app_module, '_enricher', enricher)
    app_module.app.config['TESTING'] = True
    return app_module.app.test_client()


def auth(user_id):
    return {'Authorization': f'Bearer {user_id}'}
