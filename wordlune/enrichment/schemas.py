"""
Input and output shapes for the AI enrichment actions.

Field names follow the JSON wire format used by the web client.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _WireModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra='ignore')


# -----------------
# Inputs
# -----------------

class TranslateWordInput(_WireModel):
    word: str = Field(min_length=1)
    sourceLanguage: str = Field(min_length=1)
    targetLanguage: str = Field(min_length=1)


class GenerateExampleSentenceInput(_WireModel):
    word: str = Field(min_length=1)
    language: Optional[str] = None
    partOfSpeech: Optional[str] = None


class GeneratePhoneticPronunciationInput(_WireModel):
    word: str = Field(min_length=1)
    language: Optional[str] = None


class BulkGenerateWordDetailsInput(_WireModel):
    words: List[str] = Field(min_length=1)
    sourceLanguage: str = Field(min_length=1)
    targetLanguage: str = Field(min_length=1)

    @field_validator('words')
    @classmethod
    def drop_blank_words(cls, words: List[str]) -> List[str]:
        cleaned = [w.strip() for w in words if w and w.strip()]
        if not cleaned:
            raise ValueError('at least one non-empty word is required')
        return cleaned


# -----------------
# Outputs
# -----------------

class TranslateWordOutput(_WireModel):
    translations: List[str]


class TranslateWordSingleOutput(_WireModel):
    translation: str = Field(min_length=1)


class GenerateExampleSentenceOutput(_WireModel):
    exampleSentence: str = Field(min_length=1)


class GeneratePhoneticPronunciationOutput(_WireModel):
    phoneticPronunciation: str = Field(min_length=1)


class ProcessedWord(_WireModel):
    text: str
    exampleSentence: str
    meaning: str


class BulkGenerateWordDetailsOutput(_WireModel):
    processedWords: List[ProcessedWord]
