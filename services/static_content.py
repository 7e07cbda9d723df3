# services/static_content.py
"""
Static UI strings served to the public site.

The strings live in ``services/data/static_translations.json``, keyed by
language. ``zh`` is a supported content language but has no static
strings yet, so lookups for it return ``None``.
"""

import copy
import json
import os
from typing import Optional

STATIC_TRANSLATIONS_PATH = os.path.join(os.path.dirname(__file__), 'data', 'static_translations.json')

with open(STATIC_TRANSLATIONS_PATH, encoding='utf-8') as f:
    STATIC_TRANSLATIONS = json.load(f)


def get_static_translations(lang: str) -> Optional[dict]:
    """Deep copy of one language's strings so callers can merge into it"""
    texts = STATIC_TRANSLATIONS.get(lang)
    return copy.deepcopy(texts) if texts is not None else None


def get_slides(lang: str) -> Optional[list]:
    texts = STATIC_TRANSLATIONS.get(lang) or {}
    slides = texts.get('pages', {}).get('services', {}).get('slides')
    return copy.deepcopy(slides) if slides else None
