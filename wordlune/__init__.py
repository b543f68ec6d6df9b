"""
WordLune - Vocabulary Learning Backend

A JSON API for language learners to:
1. ENRICH words with translations, example sentences and IPA via a
   generative model
2. ORGANIZE vocabulary in per-language lists and a personal word bank
3. READ and WRITE leveled stories, moderated by administrators

All data lives in Firestore.
"""

from .config import VERSION

__version__ = VERSION
__all__ = ['app', 'VERSION']
