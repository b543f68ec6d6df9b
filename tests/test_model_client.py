import pytest
import requests

from wordlune.enrichment import GenerativeModelClient, ModelStatus
from wordlune.enrichment import model_client
from wordlune.errors import ModelUnavailableError

from .conftest import FakeResponse


@pytest.fixture
def model(gemini):
    return GenerativeModelClient(api_key='test-key', model='test-model', temperature=0.2)


def test_request_shape(model, gemini):
    gemini.reply({'ok': True})

    assert model.generate_json('Say ok', {'type': 'OBJECT'}) == {'ok': True}

    url, headers, body = gemini.calls[0]
    assert url.endswith('/models/test-model:generateContent')
    assert headers == {'x-goog-api-key': 'test-key'}
    assert body['contents'][0]['parts'][0]['text'] == 'Say ok'
    assert body['generationConfig'] == {
        'responseMimeType': 'application/json',
        'temperature': 0.2,
        'responseSchema': {'type': 'OBJECT'},
    }


def test_code_fenced_json_is_accepted(model, gemini):
    gemini.reply_text('```json\n{"translation": "kitap"}\n```')

    assert model.generate_json('prompt') == {'translation': 'kitap'}


def test_unparsable_text_returns_none(model, gemini):
    gemini.reply_text('kitap')

    assert model.generate_json('prompt') is None


def test_no_candidates_returns_none(model, gemini):
    gemini.reply_empty()

    assert model.generate_json('prompt') is None


@pytest.mark.parametrize('status, message', [
    (401, 'invalid'),
    (403, 'invalid'),
    (429, 'rate limit'),
    (500, 'Unexpected status: 500'),
])
def test_http_failures(model, gemini, status, message):
    gemini.reply_status(status)

    with pytest.raises(ModelUnavailableError, match=message) as excinfo:
        model.generate_json('prompt')

    assert excinfo.value.status_code == status


def test_transport_errors(model, monkeypatch):
    def timeout(*args, **kwargs):
        raise requests.exceptions.Timeout()

    monkeypatch.setattr(model_client.requests, 'post', timeout)

    with pytest.raises(ModelUnavailableError, match="timed out"):
        model.generate_json('prompt')


def test_missing_api_key_makes_no_request(gemini):
    client = GenerativeModelClient(api_key='')

    with pytest.raises(ModelUnavailableError, match="GEMINI_API_KEY"):
        client.generate_json('prompt')

    assert gemini.calls == []
    assert client.check_status().status == ModelStatus.NOT_CONFIGURED


@pytest.mark.parametrize('status, expected', [
    (200, ModelStatus.OK),
    (403, ModelStatus.AUTH_ERROR),
    (429, ModelStatus.RATE_LIMITED),
    (502, ModelStatus.UNAVAILABLE),
])
def test_check_status(model, monkeypatch, status, expected):
    monkeypatch.setattr(model_client.requests, 'get',
                        lambda *args, **kwargs: FakeResponse(status, {}))

    info = model.check_status()

    assert info.status == expected
    assert info.to_dict()['model'] == 'test-model'
