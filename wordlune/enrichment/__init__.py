"""
AI enrichment for WordLune.

Wraps a hosted generative language model (Gemini) behind five actions:
translations, single best translation, example sentences, IPA
pronunciation and bulk word details.
"""

from .model_client import GenerativeModelClient, ModelStatus, ModelStatusInfo
from .word_enricher import WordEnricher, strip_trailing_punctuation

__all__ = [
    'GenerativeModelClient',
    'ModelStatus',
    'ModelStatusInfo',
    'WordEnricher',
    'strip_trailing_punctuation',
]
