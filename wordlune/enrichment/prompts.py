"""
Instruction templates and response schemas for the enrichment actions.

Templates use string.Template placeholders so the JSON examples can keep
their literal braces.
"""

from string import Template
from typing import List


TRANSLATE_WORD = Template("""You are an expert translator. Translate the word '$word' from $sourceLanguage to $targetLanguage.

Provide a few of the most common and relevant meanings, most relevant first. Return your answer as a JSON object with a 'translations' field, which is an array of strings.

For example, if translating 'run' from English to Turkish, a good response would be: {"translations": ["koşmak", "çalıştırmak", "yönetmek", "akmak"]}.

Only return the JSON object.""")

TRANSLATE_WORD_SINGLE = Template("""You are an expert translator. Translate the word '$word' from $sourceLanguage to $targetLanguage.

Provide only the single most common and relevant translation. Return your answer as a JSON object with a 'translation' field holding one string.

For example, if translating 'book' from English to Turkish, a good response would be: {"translation": "kitap"}.

Only return the JSON object.""")

GENERATE_EXAMPLE_SENTENCE = Template("""You are a helpful assistant. Given the word '$word', generate a concise and clear example sentence that demonstrates its meaning and usage.$details The sentence should be grammatically correct, natural-sounding, and appropriate for someone learning $language. Do not use the input word as a placeholder like '[word]'; use the actual word '$word' in the sentence.

Return your answer as a JSON object with an 'exampleSentence' field.""")

GENERATE_PHONETIC_PRONUNCIATION = Template("""You are a helpful assistant. Given the $language word '$word', provide its International Phonetic Alphabet (IPA) transcription. For example, for 'hello', you should provide '/həˈloʊ/'.

Return your answer as a JSON object with a 'phoneticPronunciation' field holding only the IPA string.""")

BULK_GENERATE_WORD_DETAILS = Template("""You are an expert linguist and translator. Your task is to process a list of words.
For each word in the input list, you must perform two actions:
1. Create a concise and natural-sounding example sentence that clearly demonstrates the word's meaning. The source language is $sourceLanguage.
2. Translate the word into $targetLanguage. Provide the most common and relevant translation.

The input words are: $words.

You must return the result as a JSON object containing a single key "processedWords".
This key should hold an array of objects, in the same order as the input words, where each object represents a word and has the following structure:
- "text": The original word.
- "exampleSentence": The generated example sentence.
- "meaning": The translation of the word.

For example, if the input is words: ["ephemeral", "ubiquitous"], sourceLanguage: "English", targetLanguage: "Turkish", the output should be:
{
  "processedWords": [
    {
      "text": "ephemeral",
      "exampleSentence": "The beauty of the cherry blossoms is ephemeral, lasting only for a short time each spring.",
      "meaning": "geçici"
    },
    {
      "text": "ubiquitous",
      "exampleSentence": "Smartphones have become ubiquitous in modern society, seen in the hands of people everywhere.",
      "meaning": "yaygın"
    }
  ]
}

Return only the JSON object. Do not include any other text or explanations.""")


def format_word_list(words: List[str]) -> str:
    """Render words as a quoted, comma separated list."""
    return ", ".join(f'"{w}"' for w in words)


# Gemini responseSchema definitions (OpenAPI subset)

def _object(properties: dict) -> dict:
    return {
        'type': 'OBJECT',
        'properties': properties,
        'required': list(properties),
    }


_STRING = {'type': 'STRING'}

TRANSLATE_WORD_SCHEMA = _object({
    'translations': {'type': 'ARRAY', 'items': _STRING},
})

TRANSLATE_WORD_SINGLE_SCHEMA = _object({
    'translation': _STRING,
})

EXAMPLE_SENTENCE_SCHEMA = _object({
    'exampleSentence': _STRING,
})

PHONETIC_PRONUNCIATION_SCHEMA = _object({
    'phoneticPronunciation': _STRING,
})

BULK_WORD_DETAILS_SCHEMA = _object({
    'processedWords': {
        'type': 'ARRAY',
        'items': _object({
            'text': _STRING,
            'exampleSentence': _STRING,
            'meaning': _STRING,
        }),
    },
})
