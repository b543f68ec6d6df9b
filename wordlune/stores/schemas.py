"""
Field constraints for data written by the stores.

Checked before any Firestore call; failures become
wordlune.errors.ValidationError.
"""

import re
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..config import (
    LIST_WORD_CATEGORIES, DEFAULT_LIST_WORD_CATEGORY, PERSONAL_WORD_CATEGORIES,
    STORY_LEVELS, STORY_CATEGORIES,
    USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH, USERNAME_PATTERN,
)
from ..errors import ValidationError


class _FormModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra='ignore')


def _one_of(value: Optional[str], allowed, label: str) -> Optional[str]:
    if value is not None and value not in allowed:
        raise ValueError(f"{label} must be one of: {', '.join(allowed)}")
    return value


# -----------------
# Lists
# -----------------

class ListInput(_FormModel):
    name: str = Field(min_length=2, max_length=100)


class ListWordInput(_FormModel):
    word: str = Field(min_length=1)
    meaning: str = Field(min_length=1)
    example: str = Field(min_length=3)
    language: Optional[str] = None
    category: str = DEFAULT_LIST_WORD_CATEGORY

    @field_validator('category')
    @classmethod
    def check_category(cls, value):
        return _one_of(value, LIST_WORD_CATEGORIES, 'category')


class ListWordUpdate(_FormModel):
    word: Optional[str] = Field(default=None, min_length=1)
    meaning: Optional[str] = Field(default=None, min_length=1)
    example: Optional[str] = Field(default=None, min_length=3)
    category: Optional[str] = None

    @field_validator('category')
    @classmethod
    def check_category(cls, value):
        return _one_of(value, LIST_WORD_CATEGORIES, 'category')


# -----------------
# Personal words
# -----------------

class PersonalWordInput(_FormModel):
    text: str = Field(min_length=1)
    category: str = 'Good'
    pronunciationText: Optional[str] = None
    exampleSentence: str = Field(min_length=1)
    meaning: Optional[str] = None

    @field_validator('category')
    @classmethod
    def check_category(cls, value):
        return _one_of(value, PERSONAL_WORD_CATEGORIES, 'category')


class PersonalWordUpdate(_FormModel):
    text: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    pronunciationText: Optional[str] = None
    exampleSentence: Optional[str] = Field(default=None, min_length=1)
    meaning: Optional[str] = None

    @field_validator('category')
    @classmethod
    def check_category(cls, value):
        return _one_of(value, PERSONAL_WORD_CATEGORIES, 'category')


# -----------------
# Stories
# -----------------

class StoryInput(_FormModel):
    title: str = Field(min_length=3)
    language: str = Field(min_length=1)
    level: str
    category: str
    content: str = Field(min_length=20)
    isPublished: bool = False

    @field_validator('level')
    @classmethod
    def check_level(cls, value):
        return _one_of(value, STORY_LEVELS, 'level')

    @field_validator('category')
    @classmethod
    def check_category(cls, value):
        return _one_of(value, STORY_CATEGORIES, 'category')


class StoryUpdate(_FormModel):
    title: Optional[str] = Field(default=None, min_length=3)
    level: Optional[str] = None
    category: Optional[str] = None
    content: Optional[str] = Field(default=None, min_length=20)
    isPublished: Optional[bool] = None

    @field_validator('level')
    @classmethod
    def check_level(cls, value):
        return _one_of(value, STORY_LEVELS, 'level')

    @field_validator('category')
    @classmethod
    def check_category(cls, value):
        return _one_of(value, STORY_CATEGORIES, 'category')


# -----------------
# Accounts
# -----------------

class UsernameInput(_FormModel):
    username: str = Field(min_length=USERNAME_MIN_LENGTH, max_length=USERNAME_MAX_LENGTH)

    @field_validator('username', mode='before')
    @classmethod
    def lowercase(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator('username')
    @classmethod
    def check_pattern(cls, value):
        if not re.match(USERNAME_PATTERN, value):
            raise ValueError("may only contain lowercase letters, numbers and underscores")
        return value


def validate(model: Type[BaseModel], data: Dict[str, Any]) -> BaseModel:
    """Validate data against model, raising wordlune ValidationError."""
    try:
        return model.model_validate(data or {})
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e)


def changed_fields(update: BaseModel) -> Dict[str, Any]:
    """Fields explicitly set on an update model, without Nones."""
    fields = update.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise ValidationError("No fields to update.")
    return fields
