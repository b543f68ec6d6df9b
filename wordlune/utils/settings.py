"""
Per-user preferences shared by every feature (learning languages, UI
language, default lists, theme).

One UserSettings object per signed-in user; UserStore is its only writer.
"""

from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Dict

from ..config import DEFAULT_SETTINGS, SUPPORTED_LANGUAGES, SUPPORTED_UI_LANGUAGES
from ..errors import ValidationError


@dataclass(frozen=True)
class UserSettings:
    """A user's preferences."""

    sourceLanguage: str = DEFAULT_SETTINGS['sourceLanguage']
    targetLanguage: str = DEFAULT_SETTINGS['targetLanguage']
    uiLanguage: str = DEFAULT_SETTINGS['uiLanguage']
    storyListId: str = DEFAULT_SETTINGS['storyListId']
    lastSelectedListId: str = DEFAULT_SETTINGS['lastSelectedListId']
    theme: str = DEFAULT_SETTINGS['theme']

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'UserSettings':
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known and v is not None})

    def merged(self, updates: Dict[str, Any]) -> 'UserSettings':
        """Return a copy with updates applied and validated."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(updates or {}) - known)
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(unknown)}")
        updated = replace(self, **(updates or {}))
        updated.validate()
        return updated

    def validate(self) -> None:
        """Raise ValidationError for unsupported values."""
        for name in ('sourceLanguage', 'targetLanguage'):
            value = getattr(self, name)
            if value not in SUPPORTED_LANGUAGES:
                raise ValidationError(f"{name}: unsupported language {value!r}")
        if self.sourceLanguage == self.targetLanguage:
            raise ValidationError("Source and target language must differ.")
        if self.uiLanguage not in SUPPORTED_UI_LANGUAGES:
            raise ValidationError(f"uiLanguage: unsupported UI language {self.uiLanguage!r}")
        if self.theme not in ('light', 'dark'):
            raise ValidationError("theme: must be 'light' or 'dark'")
