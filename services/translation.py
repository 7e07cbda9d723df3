# services/translation.py
"""
Machine translation through the Google Cloud Translation v2 REST API.

Translations are cached in Redis when a cache is configured. When the
service is disabled or has no API key, document writes skip machine
translation entirely and store no translation entries.
"""

import hashlib
import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from core.errors import IntegrationError
from core.localization import SOURCE_LANGUAGE, TARGET_LANGUAGES
from services.cache import RedisCache, cache

logger = logging.getLogger(__name__)


class TranslationError(IntegrationError):
    pass


class Translator:
    """Thin client for the v2 ``translate`` endpoint"""

    def __init__(self,
                 api_key: Optional[str] = None,
                 api_url: str = 'https://translation.googleapis.com/language/translate/v2',
                 timeout: float = 15,
                 enabled: bool = True,
                 session: Optional[requests.Session] = None,
                 result_cache: RedisCache = cache):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._enabled = enabled
        self.session = session or requests.Session()
        self.cache = result_cache

    def init_app(self, app):
        self.api_key = app.config.get('TRANSLATE_API_KEY')
        self.api_url = app.config['TRANSLATE_API_URL']
        self.timeout = app.config['TRANSLATE_TIMEOUT']
        self._enabled = app.config['TRANSLATION_ENABLED']
        app.extensions['translator'] = self
        if self._enabled and not self.api_key:
            app.logger.warning("TRANSLATE_API_KEY not set, machine translation disabled")

    @property
    def enabled(self) -> bool:
        return bool(self._enabled and self.api_key)

    @staticmethod
    def _cache_key(text: str, target: str, fmt: str) -> str:
        digest = hashlib.sha256(text.encode('utf-8')).hexdigest()
        return f"translate:{target}:{fmt}:{digest}"

    def translate_text(self, text: Optional[str], target: str, fmt: str = 'text') -> str:
        """Translate one string from English; empty input comes back empty"""
        if not text:
            return text or ''
        if target == SOURCE_LANGUAGE:
            return text
        if not self.enabled:
            raise TranslationError('Machine translation is not configured')

        key = self._cache_key(text, target, fmt)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            response = self.session.post(
                self.api_url,
                params={'key': self.api_key},
                json={'q': text, 'source': SOURCE_LANGUAGE, 'target': target, 'format': fmt},
                timeout=self.timeout
            )
            response.raise_for_status()
            translated = response.json()['data']['translations'][0]['translatedText']
        except requests.RequestException as e:
            raise TranslationError(f"Translation request to '{target}' failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise TranslationError(f"Unexpected translation response for '{target}': {e}") from e

        self.cache.set(key, translated)
        return translated

    def translate_list(self, items: Optional[Iterable[str]], target: str) -> List[str]:
        return [self.translate_text(item, target) for item in (items or [])]

    def translate_document(self, values: Dict[str, Any], target: str,
                           list_fields: Iterable[str] = (),
                           html_fields: Iterable[str] = ()) -> Dict[str, Any]:
        """Translate every field of ``values`` into one language"""
        list_fields = set(list_fields)
        html_fields = set(html_fields)
        translated = {}
        for field, value in values.items():
            if field in list_fields:
                translated[field] = self.translate_list(value, target)
            else:
                fmt = 'html' if field in html_fields else 'text'
                translated[field] = self.translate_text(value, target, fmt=fmt)
        return translated

    def translate_fields(self, values: Dict[str, Any],
                         list_fields: Iterable[str] = (),
                         html_fields: Iterable[str] = (),
                         languages: Iterable[str] = TARGET_LANGUAGES) -> Dict[str, Dict[str, Any]]:
        """
        Translate ``values`` into every target language.

        A language that fails is logged and left out of the result; the
        rest still come back.
        """
        if not self.enabled or not values:
            return {}

        results = {}
        for lang in languages:
            try:
                results[lang] = self.translate_document(values, lang, list_fields, html_fields)
            except TranslationError as e:
                logger.warning(f"Skipping '{lang}' translation: {e}")
        return results


def merge_translations(existing: Optional[Dict[str, Dict[str, Any]]],
                       fresh: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Overlay freshly translated fields on stored entries, keeping unchanged fields"""
    merged = {lang: dict(entry) for lang, entry in (existing or {}).items() if isinstance(entry, dict)}
    for lang, entry in fresh.items():
        merged.setdefault(lang, {}).update(entry)
    return merged


translator = Translator()
