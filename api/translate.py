# api/translate.py
"""
Translation API: per-section translations and the static UI strings
"""

import logging
from datetime import datetime

from flask import Blueprint, request
from sqlalchemy.exc import SQLAlchemyError

from api.industry_stats import active_stats
from api.responses import success
from core.database_models import Section
from core.errors import ApiError, NotFoundError, ValidationError
from core.extensions import db
from core.localization import SOURCE_LANGUAGE, SUPPORTED_LANGUAGES, is_supported, normalize_lang, stored_translation
from services.static_content import STATIC_TRANSLATIONS, get_slides, get_static_translations
from services.translation import TranslationError, merge_translations, translator

translate_bp = Blueprint('translate', __name__, url_prefix='/api/translate')
logger = logging.getLogger(__name__)

UNSUPPORTED_MESSAGE = f"Unsupported language. Supported languages: {', '.join(SUPPORTED_LANGUAGES)}"


def _language(lang: str) -> str:
    lang = normalize_lang(lang) or SOURCE_LANGUAGE
    if not is_supported(lang):
        raise ValidationError(UNSUPPORTED_MESSAGE)
    return lang


def _localized_stats(lang: str):
    stats = []
    for stat in active_stats():
        entry = stored_translation(stat.translations, lang) if lang != SOURCE_LANGUAGE else None
        entry = entry or {}
        stats.append({
            'number': stat.number,
            'label': entry.get('label') or stat.label,
            'description': entry.get('description') or stat.description,
        })
    return stats


@translate_bp.route('/static', methods=['GET'])
def all_static_translations():
    return success({
        'supportedLanguages': list(SUPPORTED_LANGUAGES),
        'translations': STATIC_TRANSLATIONS,
        'timestamp': datetime.utcnow().isoformat(),
    })


@translate_bp.route('/static/<lang>', methods=['GET'])
def static_translations(lang):
    lang = _language(lang)
    texts = get_static_translations(lang)
    if texts is None:
        raise NotFoundError('Translations not found for the specified language')

    try:
        stats = _localized_stats(lang)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching industry stats, serving static list: {e}")
        db.session.rollback()
    else:
        texts['industryStats'] = stats or texts.get('industryStats', [])

    return success({
        'language': lang,
        'translations': texts,
        'timestamp': datetime.utcnow().isoformat(),
    })


@translate_bp.route('/slides/<lang>', methods=['GET'])
def slides(lang):
    lang = _language(lang)
    slide_data = get_slides(lang)
    if not slide_data:
        raise NotFoundError('Slides data not found for the specified language')
    return success({
        'language': lang,
        'slides': slide_data,
        'count': len(slide_data),
        'timestamp': datetime.utcnow().isoformat(),
    })


@translate_bp.route('/<section_id>', methods=['GET'])
def translate_section(section_id):
    """
    Section in the requested language: stored translation when present,
    otherwise machine translated and stored for next time
    """
    lang = normalize_lang(request.args.get('lang')) or SOURCE_LANGUAGE
    if not is_supported(lang):
        raise ValidationError('Unsupported lang')

    section = db.session.get(Section, section_id)
    if section is None:
        raise NotFoundError('Section not found')

    if lang == SOURCE_LANGUAGE:
        return success({
            'title': section.title,
            'bodyText': section.body_text,
            'images': list(section.images or []),
            'language': SOURCE_LANGUAGE,
        })

    existing = stored_translation(section.translations, lang)
    if existing and (existing.get('title') or existing.get('bodyText')):
        data = dict(existing)
        data.update({'images': list(section.images or []), 'language': lang, 'source': 'db'})
        return success(data)

    try:
        translated = translator.translate_document(
            {'title': section.title, 'bodyText': section.body_text}, lang
        )
    except TranslationError as e:
        logger.error(f"Section {section_id} translation to {lang} failed: {e}")
        raise ApiError(502, 'Translation service unavailable')

    section.translations = merge_translations(section.translations, {lang: translated})
    db.session.commit()

    data = dict(translated)
    data.update({'images': list(section.images or []), 'language': lang, 'source': 'api'})
    return success(data)
