"""
AI word enrichment.

Each action renders one instruction template, makes exactly one model
call and validates the JSON it gets back. A missing or malformed answer
raises GenerationError with a fixed message; nothing is retried.

Actions:
- translateWord: several candidate translations
- translateWordSingle: one best translation (input word is stripped of
  trailing punctuation first; translateWord does not do this)
- generateExampleSentence
- generatePhoneticPronunciation (IPA)
- bulkGenerateWordDetails: example sentence + translation for many words
  in a single call
"""

import logging
import re
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError as PydanticValidationError

from . import prompts
from .model_client import GenerativeModelClient
from .schemas import (
    TranslateWordInput, TranslateWordOutput, TranslateWordSingleOutput,
    GenerateExampleSentenceInput, GenerateExampleSentenceOutput,
    GeneratePhoneticPronunciationInput, GeneratePhoneticPronunciationOutput,
    BulkGenerateWordDetailsInput, BulkGenerateWordDetailsOutput,
)
from ..errors import GenerationError, ValidationError

logger = logging.getLogger(__name__)

TRAILING_PUNCTUATION = re.compile(r"[\s.,;:!?…\"'“”‘’()\[\]{}]+$")

FAILURE_MESSAGES = {
    'translateWord': "Failed to get a translation from the AI.",
    'translateWordSingle': "Failed to get a translation from the AI.",
    'generateExampleSentence': "Failed to generate example sentence.",
    'generatePhoneticPronunciation': "Failed to generate phonetic pronunciation.",
    'bulkGenerateWordDetails': "Failed to generate word details from the AI.",
}


def strip_trailing_punctuation(word: str) -> str:
    """Remove trailing punctuation and whitespace: 'book.' -> 'book'."""
    return TRAILING_PUNCTUATION.sub('', word.strip())


class WordEnricher:
    """
    Runs the enrichment actions against a generative model.

    Methods return plain dicts in the wire format, e.g.
    {'translations': [...]} or {'processedWords': [...]}.
    """

    # action name -> (input model, handler method)
    ACTIONS = {
        'translateWord': (TranslateWordInput, '_translate_word'),
        'translateWordSingle': (TranslateWordInput, '_translate_word_single'),
        'generateExampleSentence': (GenerateExampleSentenceInput, '_generate_example_sentence'),
        'generatePhoneticPronunciation': (GeneratePhoneticPronunciationInput, '_generate_phonetic_pronunciation'),
        'bulkGenerateWordDetails': (BulkGenerateWordDetailsInput, '_bulk_generate_word_details'),
    }

    def __init__(self, client: GenerativeModelClient = None):
        self.client = client or GenerativeModelClient()

    # =========================================================================
    # Public API
    # =========================================================================

    def run(self, action: str, params: Dict[str, Any]) -> Dict:
        """
        Validate params for an action and run it.

        Raises:
            ValidationError: Unknown action or invalid params
            GenerationError: Model gave no usable output
            ModelUnavailableError: Model endpoint failed
        """
        if action not in self.ACTIONS:
            raise ValidationError("Invalid action")
        input_model, handler = self.ACTIONS[action]
        data = self._validate_input(input_model, params)
        return getattr(self, handler)(data)

    def translate_word(self, word: str, source_language: str,
                       target_language: str) -> Dict[str, List[str]]:
        return self.run('translateWord', {
            'word': word,
            'sourceLanguage': source_language,
            'targetLanguage': target_language,
        })

    def translate_word_single(self, word: str, source_language: str,
                              target_language: str) -> Dict[str, str]:
        return self.run('translateWordSingle', {
            'word': word,
            'sourceLanguage': source_language,
            'targetLanguage': target_language,
        })

    def generate_example_sentence(self, word: str, language: str = None,
                                  part_of_speech: str = None) -> Dict[str, str]:
        return self.run('generateExampleSentence', {
            'word': word,
            'language': language,
            'partOfSpeech': part_of_speech,
        })

    def generate_phonetic_pronunciation(self, word: str,
                                        language: str = None) -> Dict[str, str]:
        return self.run('generatePhoneticPronunciation', {
            'word': word,
            'language': language,
        })

    def bulk_generate_word_details(self, words: List[str], source_language: str,
                                   target_language: str) -> Dict[str, List[Dict]]:
        """
        Generate example sentences and translations for many words at once.

        The result may hold fewer entries than requested: entries for words
        that were not asked for, or with an empty sentence or meaning, are
        dropped. Callers must accept len(processedWords) <= len(words).
        """
        return self.run('bulkGenerateWordDetails', {
            'words': words,
            'sourceLanguage': source_language,
            'targetLanguage': target_language,
        })

    # =========================================================================
    # Action handlers
    # =========================================================================

    def _translate_word(self, data: TranslateWordInput) -> Dict:
        prompt = prompts.TRANSLATE_WORD.substitute(
            word=data.word,
            sourceLanguage=data.sourceLanguage,
            targetLanguage=data.targetLanguage,
        )
        raw = self.client.generate_json(prompt, prompts.TRANSLATE_WORD_SCHEMA)
        output = self._validate_output('translateWord', raw, 'translations', TranslateWordOutput)
        return output.model_dump()

    def _translate_word_single(self, data: TranslateWordInput) -> Dict:
        word = strip_trailing_punctuation(data.word)
        if not word:
            raise ValidationError("word: nothing left to translate after removing punctuation")

        prompt = prompts.TRANSLATE_WORD_SINGLE.substitute(
            word=word,
            sourceLanguage=data.sourceLanguage,
            targetLanguage=data.targetLanguage,
        )
        raw = self.client.generate_json(prompt, prompts.TRANSLATE_WORD_SINGLE_SCHEMA)
        output = self._validate_output('translateWordSingle', raw, 'translation', TranslateWordSingleOutput)
        return output.model_dump()

    def _generate_example_sentence(self, data: GenerateExampleSentenceInput) -> Dict:
        details = f" Use it as a {data.partOfSpeech}." if data.partOfSpeech else ""
        prompt = prompts.GENERATE_EXAMPLE_SENTENCE.substitute(
            word=data.word,
            details=details,
            language=data.language or "English",
        )
        raw = self.client.generate_json(prompt, prompts.EXAMPLE_SENTENCE_SCHEMA)
        output = self._validate_output('generateExampleSentence', raw, 'exampleSentence',
                                       GenerateExampleSentenceOutput)
        return output.model_dump()

    def _generate_phonetic_pronunciation(self, data: GeneratePhoneticPronunciationInput) -> Dict:
        prompt = prompts.GENERATE_PHONETIC_PRONUNCIATION.substitute(
            word=data.word,
            language=data.language or "English",
        )
        raw = self.client.generate_json(prompt, prompts.PHONETIC_PRONUNCIATION_SCHEMA)
        output = self._validate_output('generatePhoneticPronunciation', raw, 'phoneticPronunciation',
                                       GeneratePhoneticPronunciationOutput)
        return output.model_dump()

    def _bulk_generate_word_details(self, data: BulkGenerateWordDetailsInput) -> Dict:
        prompt = prompts.BULK_GENERATE_WORD_DETAILS.substitute(
            words=prompts.format_word_list(data.words),
            sourceLanguage=data.sourceLanguage,
            targetLanguage=data.targetLanguage,
        )
        raw = self.client.generate_json(prompt, prompts.BULK_WORD_DETAILS_SCHEMA)
        output = self._validate_output('bulkGenerateWordDetails', raw, 'processedWords',
                                       BulkGenerateWordDetailsOutput)

        requested = {w.lower() for w in data.words}
        by_word = {}
        for entry in output.processedWords:
            key = entry.text.lower()
            if key not in requested:
                logger.warning("Dropping unrequested word from bulk output: %r", entry.text)
                continue
            if not entry.exampleSentence or not entry.meaning:
                logger.warning("Dropping incomplete bulk entry for %r", entry.text)
                continue
            if key in by_word:
                logger.warning("Dropping repeated bulk entry for %r", entry.text)
                continue
            by_word[key] = entry.model_dump()

        # Input order, one entry per requested word
        processed = []
        for word in data.words:
            entry = by_word.pop(word.lower(), None)
            if entry is not None:
                processed.append(entry)

        if len(processed) < len(data.words):
            logger.info("Bulk generation returned %d of %d words",
                        len(processed), len(data.words))

        return {'processedWords': processed}

    # =========================================================================
    # Validation helpers
    # =========================================================================

    def _validate_input(self, model: Type[BaseModel], params: Dict[str, Any]) -> BaseModel:
        try:
            return model.model_validate(params or {})
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e)

    def _validate_output(self, action: str, raw: Optional[Any], key: str,
                         model: Type[BaseModel]) -> BaseModel:
        """Check the model answer has the required key and the declared shape."""
        message = FAILURE_MESSAGES[action]

        if not isinstance(raw, dict) or raw.get(key) is None:
            logger.error("%s: model output missing '%s'", action, key)
            raise GenerationError(message, action)

        try:
            return model.model_validate(raw)
        except PydanticValidationError as e:
            logger.error("%s: model output has the wrong shape: %s", action, e)
            raise GenerationError(message, action)
