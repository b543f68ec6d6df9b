"""
Configuration settings for WordLune.
"""

from pathlib import Path
import os
from dotenv import load_dotenv


VERSION = "1.4.0"

# Directory paths
BASE_DIR = Path(__file__).parent
load_dotenv(BASE_DIR / ".env")
load_dotenv()

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Web server
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "5001"))

# Generative model (Gemini REST API)
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "") or os.environ.get("GOOGLE_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")
AI_REQUEST_TIMEOUT = float(os.environ.get("AI_REQUEST_TIMEOUT", "60"))
AI_TEMPERATURE = float(os.environ.get("AI_TEMPERATURE", "0.4"))

# External service URLs
URLS = {
    "gemini": "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
    "gemini_model": "https://generativelanguage.googleapis.com/v1beta/models/{model}",
}

# Firebase (service account JSON path; empty means application default credentials)
FIREBASE_CREDENTIALS = (
    os.environ.get("FIREBASE_CREDENTIALS", "")
    or os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", "")
)
FIREBASE_PROJECT_ID = os.environ.get("FIREBASE_PROJECT_ID", "")

# Firestore allows at most 500 writes in one batch
MAX_BATCH_WRITES = 500

# Languages a user can learn or translate into
SUPPORTED_LANGUAGES = [
    "English", "Turkish", "Spanish", "French", "German", "Italian",
    "Portuguese", "Russian", "Chinese", "Japanese", "Korean", "Arabic",
]

SUPPORTED_UI_LANGUAGES = {
    'en': 'English',
    'tr': 'Türkçe',
}

DEFAULT_SETTINGS = {
    'sourceLanguage': 'English',
    'targetLanguage': 'Turkish',
    'uiLanguage': 'tr',
    'storyListId': '',
    'lastSelectedListId': '',
    'theme': 'light',
}

# Review categories for words inside a list
LIST_WORD_CATEGORIES = ['Uncategorized', 'Bad', 'Good', 'Very Good', 'Repeat']
DEFAULT_LIST_WORD_CATEGORY = 'Uncategorized'

# Categories for the flat personal word bank
PERSONAL_WORD_CATEGORIES = ['Bad', 'Good', 'Very Good']

# Stories
STORY_LEVELS = ['A1', 'A2', 'B1', 'B2', 'C1', 'C2']
STORY_CATEGORIES = [
    'Adventure', 'Romance', 'Mystery', 'Science Fiction', 'Fantasy',
    'Comedy', 'Drama', 'Horror', 'Bilimsel Yazı',
]
ADMIN_AUTHOR_ID = "admin"
ADMIN_AUTHOR_NAME = "WordLune"

# Accounts
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
USERNAME_PATTERN = r'^[a-z0-9_]+$'
MAX_LOGIN_HISTORY = 25
BAN_DURATIONS = {
    'week': 7,          # days
    'permanent': None,
}
