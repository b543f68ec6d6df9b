"""
Client for the hosted generative language model.

Sends one prompt per call to the Gemini generateContent endpoint and asks
for a JSON response. Provides:
- JSON extraction from the first candidate
- Mapping of HTTP failures to ModelUnavailableError
- A status check for the /api/status route
"""

import json
import logging
import requests
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..config import (
    URLS, GEMINI_API_KEY, GEMINI_MODEL, AI_REQUEST_TIMEOUT, AI_TEMPERATURE
)
from ..errors import ModelUnavailableError

logger = logging.getLogger(__name__)


class ModelStatus(Enum):
    """Status of the model connection."""
    OK = "ok"
    AUTH_ERROR = "auth_error"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    NOT_CONFIGURED = "not_configured"


@dataclass
class ModelStatusInfo:
    """Status information for the model endpoint."""
    model: str
    status: ModelStatus
    message: str = ""
    last_error: str = ""

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'model': self.model,
            'status': self.status.value,
            'message': self.message,
            'last_error': self.last_error,
        }


class GenerativeModelClient:
    """
    Thin wrapper around the Gemini REST API.

    Each call is a single request: no retries, no caching.
    """

    def __init__(self, api_key: str = None, model: str = None,
                 timeout: float = None, temperature: float = None):
        """
        Initialize the model client.

        Args:
            api_key: Gemini API key (default from GEMINI_API_KEY env var)
            model: Model name (default from GEMINI_MODEL env var)
            timeout: Request timeout in seconds
            temperature: Sampling temperature
        """
        self.api_key = api_key if api_key is not None else GEMINI_API_KEY
        self.model = model or GEMINI_MODEL
        self.timeout = timeout or AI_REQUEST_TIMEOUT
        self.temperature = AI_TEMPERATURE if temperature is None else temperature

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def generate_json(self, prompt: str,
                      response_schema: Optional[Dict] = None) -> Optional[Any]:
        """
        Send a prompt and parse the model's answer as JSON.

        Args:
            prompt: Full instruction text
            response_schema: Optional Gemini responseSchema for the output

        Returns:
            Parsed JSON value, or None if the model gave no usable text

        Raises:
            ModelUnavailableError: On missing key, transport errors or
                non-200 responses
        """
        if not self.api_key:
            raise ModelUnavailableError("Gemini API key not configured. Set GEMINI_API_KEY.")

        generation_config = {
            'responseMimeType': 'application/json',
            'temperature': self.temperature,
        }
        if response_schema:
            generation_config['responseSchema'] = response_schema

        body = {
            'contents': [{'role': 'user', 'parts': [{'text': prompt}]}],
            'generationConfig': generation_config,
        }

        try:
            resp = requests.post(
                URLS['gemini'].format(model=self.model),
                headers={'x-goog-api-key': self.api_key},
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise ModelUnavailableError("Model request timed out.")
        except requests.exceptions.RequestException as e:
            raise ModelUnavailableError(f"Model request failed: {e}")

        if resp.status_code in [401, 403]:
            raise ModelUnavailableError("Gemini API key is invalid.", resp.status_code)
        if resp.status_code == 429:
            raise ModelUnavailableError("Gemini rate limit exceeded.", resp.status_code)
        if resp.status_code != 200:
            raise ModelUnavailableError(f"Unexpected status: {resp.status_code}", resp.status_code)

        try:
            data = resp.json()
        except ValueError:
            logger.warning("Model returned a non-JSON envelope")
            return None

        text = self._extract_text(data)
        if not text:
            logger.warning("Model returned no candidates (finish reason: %s)",
                           self._finish_reason(data))
            return None

        return self._parse_json(text)

    def _extract_text(self, data: Dict) -> str:
        """Join the text parts of the first candidate."""
        candidates = data.get('candidates') or []
        if not candidates:
            return ""
        parts = (candidates[0].get('content') or {}).get('parts') or []
        return "".join(part.get('text', '') for part in parts if isinstance(part, dict))

    def _finish_reason(self, data: Dict) -> str:
        candidates = data.get('candidates') or []
        if candidates:
            return candidates[0].get('finishReason', 'unknown')
        feedback = data.get('promptFeedback') or {}
        return feedback.get('blockReason', 'unknown')

    def _parse_json(self, text: str) -> Optional[Any]:
        """Parse JSON text, tolerating a markdown code fence around it."""
        text = text.strip()
        if text.startswith('```'):
            text = text.split('\n', 1)[1] if '\n' in text else ''
            if text.rstrip().endswith('```'):
                text = text.rstrip()[:-3]
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Could not parse model output as JSON: %.80s", text)
            return None

    def check_status(self) -> ModelStatusInfo:
        """Check whether the configured model is reachable with the current key."""
        if not self.api_key:
            return ModelStatusInfo(
                model=self.model,
                status=ModelStatus.NOT_CONFIGURED,
                message="Gemini API key not configured. Set GEMINI_API_KEY.",
            )

        try:
            resp = requests.get(
                URLS['gemini_model'].format(model=self.model),
                headers={'x-goog-api-key': self.api_key},
                timeout=10,
            )

            if resp.status_code == 200:
                return ModelStatusInfo(
                    model=self.model,
                    status=ModelStatus.OK,
                    message="Gemini API connected.",
                )
            elif resp.status_code in [401, 403]:
                return ModelStatusInfo(
                    model=self.model,
                    status=ModelStatus.AUTH_ERROR,
                    message="Gemini API key is invalid.",
                    last_error=f"HTTP {resp.status_code}",
                )
            elif resp.status_code == 429:
                return ModelStatusInfo(
                    model=self.model,
                    status=ModelStatus.RATE_LIMITED,
                    message="Rate limited.",
                    last_error="429 Too Many Requests",
                )
            else:
                return ModelStatusInfo(
                    model=self.model,
                    status=ModelStatus.UNAVAILABLE,
                    message=f"Unexpected status: {resp.status_code}",
                    last_error=f"HTTP {resp.status_code}",
                )

        except requests.exceptions.Timeout:
            return ModelStatusInfo(
                model=self.model,
                status=ModelStatus.UNAVAILABLE,
                message="Request timed out.",
                last_error="Timeout",
            )
        except requests.exceptions.RequestException as e:
            return ModelStatusInfo(
                model=self.model,
                status=ModelStatus.UNAVAILABLE,
                message=f"Error: {e}",
                last_error=str(e),
            )
