# api/industry_stats.py
"""
Industry Stats API: headline figures shown on the public site
"""

import logging
from typing import Any, Dict

from flask import Blueprint, request
from sqlalchemy import asc, desc

from api.responses import success
from core.database_models import IndustryStat
from core.errors import NotFoundError
from core.extensions import db
from core.localization import overlay_translation
from core.pagination import parse_bool, parse_int
from middleware.security import require_admin
from middleware.upload import request_payload
from services.translation import merge_translations, translator

industry_stats_bp = Blueprint('industry_stats', __name__, url_prefix='/api/industry-stats')
logger = logging.getLogger(__name__)

TRANSLATED_FIELDS = ('label', 'description')


def active_stats():
    """Active stats in display order, newest first within an order value"""
    return (IndustryStat.query
            .filter(IndustryStat.is_active.is_(True))
            .order_by(asc(IndustryStat.order), desc(IndustryStat.created_at))
            .all())


def _stat_values(payload: Dict[str, Any]) -> Dict[str, Any]:
    values = {field: payload[field] for field in ('number', 'label', 'description') if field in payload}
    if 'order' in payload:
        values['order'] = parse_int(payload['order'], 0, 'order')
    if 'isActive' in payload:
        values['is_active'] = parse_bool(payload['isActive'], True)
    return values


def _get_stat(stat_id: str) -> IndustryStat:
    stat = db.session.get(IndustryStat, stat_id)
    if stat is None:
        raise NotFoundError('Industry stat not found')
    return stat


@industry_stats_bp.route('', methods=['GET'])
@industry_stats_bp.route('/', methods=['GET'])
def list_stats():
    if parse_bool(request.args.get('includeInactive'), False):
        stats = IndustryStat.query.order_by(asc(IndustryStat.order), desc(IndustryStat.created_at)).all()
    else:
        stats = active_stats()
    lang = request.args.get('lang')
    return success([
        overlay_translation(stat.to_dict(), stat.translations, lang, TRANSLATED_FIELDS) for stat in stats
    ])


@industry_stats_bp.route('/<stat_id>', methods=['GET'])
def get_stat(stat_id):
    stat = _get_stat(stat_id)
    return success(overlay_translation(stat.to_dict(), stat.translations, request.args.get('lang'), TRANSLATED_FIELDS))


@industry_stats_bp.route('', methods=['POST'])
@industry_stats_bp.route('/', methods=['POST'])
@require_admin
def create_stat():
    values = _stat_values(request_payload())
    for field in ('number', 'label', 'description'):
        values.setdefault(field, '')

    stat = IndustryStat(**values)
    stat.translations = translator.translate_fields({field: values[field] for field in TRANSLATED_FIELDS})
    db.session.add(stat)
    db.session.commit()
    return success(stat.to_dict(), status=201)


@industry_stats_bp.route('/<stat_id>', methods=['PUT'])
@require_admin
def update_stat(stat_id):
    stat = _get_stat(stat_id)
    values = _stat_values(request_payload())

    for column, value in values.items():
        setattr(stat, column, value)
    fresh = translator.translate_fields({field: values[field] for field in TRANSLATED_FIELDS if field in values})
    if fresh:
        stat.translations = merge_translations(stat.translations, fresh)

    db.session.commit()
    return success(stat.to_dict(), message='Industry stat updated successfully')


@industry_stats_bp.route('/<stat_id>', methods=['DELETE'])
@require_admin
def delete_stat(stat_id):
    stat = _get_stat(stat_id)
    db.session.delete(stat)
    db.session.commit()
    return success({'id': stat_id}, message='Industry stat deleted successfully')
