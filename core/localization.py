# core/localization.py
"""
Language constants and helpers for overlaying stored translations on documents.
"""

from typing import Any, Dict, Iterable, Optional

SOURCE_LANGUAGE = 'en'
SUPPORTED_LANGUAGES = ('en', 'fr', 'pt', 'es', 'ru', 'zh')
TARGET_LANGUAGES = tuple(lang for lang in SUPPORTED_LANGUAGES if lang != SOURCE_LANGUAGE)

# Page and Section documents predate Chinese support
CONTENT_LANGUAGES = ('en', 'fr', 'pt', 'es', 'ru')


def normalize_lang(lang: Optional[str]) -> Optional[str]:
    if lang is None:
        return None
    lang = lang.strip().lower()
    return lang or None


def is_supported(lang: Optional[str]) -> bool:
    return lang in SUPPORTED_LANGUAGES


def stored_translation(translations: Optional[Dict[str, Any]], lang: str) -> Optional[Dict[str, Any]]:
    """Return the stored translation entry for ``lang`` if it has any content"""
    if not translations or not lang:
        return None
    entry = translations.get(lang)
    if not isinstance(entry, dict):
        return None
    if not any(value for value in entry.values()):
        return None
    return entry


def overlay_translation(data: Dict[str, Any],
                        translations: Optional[Dict[str, Any]],
                        lang: Optional[str],
                        fields: Iterable[str],
                        set_language: bool = False) -> Dict[str, Any]:
    """
    Replace ``fields`` in a serialised document with the stored translation.

    Empty translated values fall back to the source text. Nothing changes
    for English, unsupported languages, or documents without a stored entry.
    """
    lang = normalize_lang(lang)
    if not lang or lang == SOURCE_LANGUAGE or not is_supported(lang):
        return data
    entry = stored_translation(translations, lang)
    if entry is None:
        return data

    localized = dict(data)
    for field in fields:
        value = entry.get(field)
        if value:
            localized[field] = value
    if set_language:
        localized['language'] = lang
    return localized
