"""
Exceptions raised by the WordLune services.

Lookups that find nothing return None instead of raising.
"""

from typing import List, Optional


class WordLuneError(Exception):
    """Base class for all WordLune errors."""


class GenerationError(WordLuneError):
    """Raised when the language model returned no usable output."""
    def __init__(self, message: str, action: str = "unknown"):
        super().__init__(message)
        self.action = action


class ModelUnavailableError(WordLuneError):
    """Raised when the language model endpoint cannot be reached or refuses the call."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(WordLuneError):
    """Raised when a request carries no valid ID token."""


class AuthorizationError(WordLuneError):
    """Raised when a user acts on a resource they do not own, or is banned."""


class ValidationError(WordLuneError):
    """Raised when input fails field constraints before any write or network call."""
    def __init__(self, message: str, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, exc) -> 'ValidationError':
        """Build from a pydantic ValidationError, keeping the first message."""
        details = exc.errors()
        if details:
            first = details[0]
            location = ".".join(str(part) for part in first.get('loc', ()))
            message = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get('msg', '')
        else:
            message = str(exc)
        return cls(message, [
            {'loc': list(d.get('loc', ())), 'msg': d.get('msg', '')} for d in details
        ])


class UsernameTakenError(ValidationError):
    """Raised when a username is already used by another account."""


class DatabaseUnavailableError(WordLuneError):
    """Raised when no Firestore client could be created."""
