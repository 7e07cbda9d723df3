# api/sections.py
"""
Sections API: the content blocks that pages are assembled from
"""

import logging
from typing import Any, Dict, List

from flask import Blueprint, current_app, request
from sqlalchemy import asc, desc

from api.responses import success
from core.database_models import Page, Section
from core.errors import NotFoundError, ValidationError
from core.extensions import db
from core.localization import overlay_translation
from core.pagination import page_params, parse_bool, parse_int, simple_pagination
from middleware.security import require_admin
from middleware.upload import image_files, parse_list_field, request_payload
from services.storage import StorageError, storage

sections_bp = Blueprint('sections', __name__, url_prefix='/api/sections')
logger = logging.getLogger(__name__)

SECTION_FIELDS = {
    'title': 'title',
    'bodyText': 'body_text',
    'images': 'images',
    'language': 'language',
    'pageNumber': 'page_number',
    'sectionId': 'section_id',
    'isActive': 'is_active',
    'translations': 'translations',
}
TRANSLATED_FIELDS = ('title', 'bodyText')


def _section_values(payload: Dict[str, Any]) -> Dict[str, Any]:
    values = {}
    for field, column in SECTION_FIELDS.items():
        if field not in payload:
            continue
        value = payload[field]
        if field == 'images':
            value = parse_list_field(value, field)
        elif field == 'isActive':
            value = parse_bool(value, True)
        elif field == 'pageNumber':
            value = parse_int(value, None, 'pageNumber') if value is not None else None
        elif field == 'translations' and not isinstance(value, dict):
            raise ValidationError('translations must be an object')
        values[column] = value
    return values


def _uploaded_images() -> List[str]:
    urls = []
    for image in image_files('images', current_app.config['SECTION_MAX_IMAGES']):
        try:
            urls.append(storage.upload(image.data, image.filename, image.mimetype,
                                       folder='sections', resource_type='image'))
        except StorageError as e:
            logger.warning(f"Section image upload failed for {image.filename}: {e}")
    return urls


def _get_section(section_id: str) -> Section:
    section = db.session.get(Section, section_id)
    if section is None:
        raise NotFoundError('Section not found')
    return section


@sections_bp.route('', methods=['GET'])
@sections_bp.route('/', methods=['GET'])
def list_sections():
    page, limit = page_params(request.args, default_limit=10, max_limit=100)

    query = Section.query
    if request.args.get('pageNumber'):
        query = query.filter(Section.page_number == parse_int(request.args['pageNumber'], None, 'pageNumber'))
    if request.args.get('sectionId'):
        query = query.filter(Section.section_id == request.args['sectionId'])
    if request.args.get('language'):
        query = query.filter(Section.language == request.args['language'])
    if request.args.get('isActive') is not None:
        query = query.filter(Section.is_active.is_(parse_bool(request.args['isActive'], True)))

    total = query.count()
    sections = (query.order_by(asc(Section.page_number), desc(Section.created_at))
                .offset((page - 1) * limit)
                .limit(limit)
                .all())

    lang = request.args.get('lang')
    items = [
        overlay_translation(section.to_dict(), section.translations, lang, TRANSLATED_FIELDS, set_language=True)
        for section in sections
    ]
    return success(items, pagination=simple_pagination(page, limit, total))


@sections_bp.route('/<section_id>', methods=['GET'])
def get_section(section_id):
    section = _get_section(section_id)
    return success(overlay_translation(section.to_dict(), section.translations,
                                       request.args.get('lang'), TRANSLATED_FIELDS, set_language=True))


@sections_bp.route('', methods=['POST'])
@sections_bp.route('/', methods=['POST'])
@require_admin
def create_section():
    values = _section_values(request_payload())
    if not str(values.get('title') or '').strip() or not str(values.get('body_text') or '').strip():
        raise ValidationError('title and bodyText are required')

    values['images'] = list(values.get('images') or []) + _uploaded_images()
    section = Section(**values)
    db.session.add(section)
    db.session.commit()
    logger.info(f"Section created: {section.id} ({section.section_id})")
    return success(section.to_dict(), status=201)


@sections_bp.route('/<section_id>', methods=['PUT'])
@require_admin
def update_section(section_id):
    section = _get_section(section_id)
    values = _section_values(request_payload())
    for field, column in (('title', 'title'), ('bodyText', 'body_text')):
        if column in values and not str(values[column] or '').strip():
            raise ValidationError(f"{field} cannot be empty")

    uploaded = _uploaded_images()
    if uploaded:
        values['images'] = list(values.get('images', section.images) or []) + uploaded

    for column, value in values.items():
        setattr(section, column, value)
    db.session.commit()
    return success(section.to_dict())


@sections_bp.route('/<section_id>', methods=['DELETE'])
@require_admin
def delete_section(section_id):
    section = _get_section(section_id)

    detached = 0
    for page in Page.query.all():
        if section_id in (page.sections or []):
            page.sections = [existing for existing in page.sections if existing != section_id]
            detached += 1

    db.session.delete(section)
    db.session.commit()
    logger.info(f"Section deleted: {section_id} (detached from {detached} pages)")
    return success({'id': section_id})
