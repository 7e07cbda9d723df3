# api/pages.py
"""
Pages API: CMS pages and the ordered sections attached to them.

Localised reads only overlay stored translations; pages are never
machine-translated on read.
"""

import logging
from typing import Any, Dict, List, Optional

from flask import Blueprint, request
from sqlalchemy import asc, desc, func, or_

from api.responses import success
from core.database_models import Page, Section
from core.errors import NotFoundError, ValidationError
from core.extensions import db
from core.localization import normalize_lang, overlay_translation
from core.pagination import page_params, parse_bool, parse_int, simple_pagination
from middleware.security import require_admin
from middleware.upload import request_payload

pages_bp = Blueprint('pages', __name__, url_prefix='/api/pages')
logger = logging.getLogger(__name__)

PAGE_FIELDS = {
    'title': 'title',
    'description': 'description',
    'slug': 'slug',
    'language': 'language',
    'pageNumber': 'page_number',
    'isActive': 'is_active',
    'sections': 'sections',
    'translations': 'translations',
    'metadata': 'page_metadata',
}
PAGE_TRANSLATED_FIELDS = ('title', 'description')
SECTION_TRANSLATED_FIELDS = ('title', 'bodyText')
LIST_SECTION_LIMIT = 5


def load_sections(section_ids: List[str], active_only: bool = False, limit: Optional[int] = None) -> List[Section]:
    """Sections in the page's order; ids without a matching section are skipped"""
    if not section_ids:
        return []
    query = Section.query.filter(Section.id.in_(section_ids))
    if active_only:
        query = query.filter(Section.is_active.is_(True))
    by_id = {section.id: section for section in query.all()}
    sections = [by_id[section_id] for section_id in section_ids if section_id in by_id]
    return sections[:limit] if limit is not None else sections


def serialize_page(page: Page, sections: Optional[List[Section]] = None, lang: Optional[str] = None) -> Dict[str, Any]:
    """
    Serialise a page, optionally with populated sections, overlaying stored
    translations when ``lang`` differs from the page's own language
    """
    lang = normalize_lang(lang)
    localize = bool(lang) and lang != page.language

    section_data = None
    if sections is not None:
        section_data = [
            overlay_translation(section.to_dict(), section.translations, lang if localize else None,
                                SECTION_TRANSLATED_FIELDS, set_language=True)
            for section in sections
        ]

    data = page.to_dict(sections=section_data)
    if localize:
        data = overlay_translation(data, page.translations, lang, PAGE_TRANSLATED_FIELDS, set_language=True)
    return data


def _get_page(page_id: str) -> Page:
    page = db.session.get(Page, page_id)
    if page is None:
        raise NotFoundError('Page not found')
    return page


def _page_values(payload: Dict[str, Any]) -> Dict[str, Any]:
    values = {}
    for field, column in PAGE_FIELDS.items():
        if field not in payload:
            continue
        value = payload[field]
        if field == 'isActive':
            value = parse_bool(value, True)
        elif field == 'pageNumber':
            value = parse_int(value, None, 'pageNumber') if value is not None else None
        elif field in ('sections',) and not isinstance(value, list):
            raise ValidationError('sections must be a list of section ids')
        elif field in ('translations', 'metadata') and not isinstance(value, dict):
            raise ValidationError(f"{field} must be an object")
        values[column] = value
    return values


def _slug_taken(slug: str, exclude_id: Optional[str] = None) -> bool:
    query = Page.query.filter(Page.slug == slug)
    if exclude_id is not None:
        query = query.filter(Page.id != exclude_id)
    return query.first() is not None


@pages_bp.route('', methods=['GET'])
@pages_bp.route('/', methods=['GET'])
def list_pages():
    page_number, limit = page_params(request.args, default_limit=10, max_limit=100)
    lang = normalize_lang(request.args.get('lang')) or 'en'
    populate = parse_bool(request.args.get('populate'), False)

    query = Page.query
    if request.args.get('isActive') is not None:
        query = query.filter(Page.is_active.is_(parse_bool(request.args['isActive'], True)))
    if request.args.get('language'):
        query = query.filter(Page.language == request.args['language'])
    search = request.args.get('search')
    if search:
        query = query.filter(or_(Page.title.ilike(f"%{search}%"), Page.description.ilike(f"%{search}%")))

    total = query.count()
    pages = (query.order_by(asc(Page.page_number), desc(Page.created_at))
             .offset((page_number - 1) * limit)
             .limit(limit)
             .all())

    items = []
    for page in pages:
        sections = load_sections(page.sections, limit=LIST_SECTION_LIMIT) if populate else None
        items.append(serialize_page(page, sections, lang if lang != 'en' else None))

    return success(items, pagination=simple_pagination(page_number, limit, total), lang=lang)


@pages_bp.route('/slug/<slug>', methods=['GET'])
def get_page_by_slug(slug):
    normalized = (slug or '').strip().lower()
    page = Page.query.filter(func.lower(func.trim(Page.slug)) == normalized, Page.is_active.is_(True)).first()
    if page is None:
        raise NotFoundError('Page not found')

    populate = parse_bool(request.args.get('populate'), True)
    sections = load_sections(page.sections, active_only=True) if populate else None
    return success(serialize_page(page, sections, request.args.get('lang')))


@pages_bp.route('/search/<page_name>', methods=['GET'])
@pages_bp.route('/search/<page_name>/<section_name>', methods=['GET'])
def search_page(page_name, section_name=None):
    page = (Page.query
            .filter(Page.slug.ilike(f"%{page_name}%"), Page.is_active.is_(True))
            .order_by(asc(Page.page_number))
            .first())
    if page is None:
        raise NotFoundError('Page not found')

    sections = load_sections(page.sections)
    if section_name:
        needle = section_name.lower()
        sections = [
            section for section in sections
            if needle in (section.title or '').lower() or needle in (section.section_id or '').lower()
        ]
    return success(serialize_page(page, sections, request.args.get('lang')))


@pages_bp.route('/<page_id>', methods=['GET'])
def get_page(page_id):
    page = _get_page(page_id)
    populate = parse_bool(request.args.get('populate'), True)
    sections = load_sections(page.sections) if populate else None
    return success(serialize_page(page, sections, request.args.get('lang')))


@pages_bp.route('', methods=['POST'])
@pages_bp.route('/', methods=['POST'])
@require_admin
def create_page():
    payload = request_payload()
    if not payload.get('title') or not payload.get('slug'):
        raise ValidationError('title and slug are required')

    values = _page_values(payload)
    if _slug_taken(values['slug']):
        raise ValidationError('Page with this slug already exists')

    page = Page(**values)
    db.session.add(page)
    db.session.commit()
    logger.info(f"Page created: {page.slug}")
    return success(serialize_page(page), status=201)


@pages_bp.route('/<page_id>', methods=['PUT'])
@require_admin
def update_page(page_id):
    page = _get_page(page_id)
    values = _page_values(request_payload())

    if values.get('slug') and _slug_taken(values['slug'], exclude_id=page.id):
        raise ValidationError('Page with this slug already exists')
    if 'title' in values and not values['title']:
        raise ValidationError('title is required')

    for column, value in values.items():
        setattr(page, column, value)
    db.session.commit()
    return success(serialize_page(page))


@pages_bp.route('/<page_id>', methods=['DELETE'])
@require_admin
def delete_page(page_id):
    page = _get_page(page_id)
    db.session.delete(page)
    db.session.commit()
    logger.info(f"Page deleted: {page_id}")
    return success({'id': page_id})


@pages_bp.route('/<page_id>/sections', methods=['POST'])
@require_admin
def add_section(page_id):
    section_id = request_payload().get('sectionId')
    if not section_id:
        raise ValidationError('sectionId is required')
    if db.session.get(Section, section_id) is None:
        raise NotFoundError('Section not found')

    page = _get_page(page_id)
    if section_id in (page.sections or []):
        raise ValidationError('Section is already added to this page')

    page.sections = list(page.sections or []) + [section_id]
    db.session.commit()
    return success(serialize_page(page, load_sections(page.sections)))


@pages_bp.route('/<page_id>/sections/<section_id>', methods=['DELETE'])
@require_admin
def remove_section(page_id, section_id):
    page = _get_page(page_id)
    page.sections = [existing for existing in (page.sections or []) if existing != section_id]
    db.session.commit()
    return success(serialize_page(page, load_sections(page.sections)))
