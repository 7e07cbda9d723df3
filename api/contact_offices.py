# api/contact_offices.py
"""
Contact Offices API

Public grouped listing under ``/api/contact-offices`` (also ``/api/contacts``)
and admin management under ``/api/contact-offices/admin``. Offices keep
snake_case keys on the wire.
"""

import logging
import math
import re
from collections import OrderedDict
from typing import Any, Dict, Optional

from flask import Blueprint, jsonify, request
from sqlalchemy import asc, desc

from api.responses import success
from core.database_models import ContactOffice
from core.errors import ApiError, NotFoundError, ValidationError
from core.extensions import db
from core.localization import overlay_translation
from core.pagination import parse_bool, parse_int
from middleware.security import require_admin
from middleware.upload import image_file, parse_list_field, request_payload
from services.geocoding import geocoder
from services.storage import StorageError, storage
from services.translation import merge_translations, translator

contact_offices_bp = Blueprint('contact_offices', __name__)
logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('region_name', 'region', 'country', 'office_name', 'address', 'phone')
TRANSLATED_FIELDS = ('region_name', 'region', 'country', 'office_name', 'address', 'notes')
ORDERING = (asc(ContactOffice.region_order), asc(ContactOffice.office_order))


def _coordinate(value: Any, name: str) -> Optional[float]:
    """``""`` and ``None`` mean no coordinate"""
    if value is None or value == '':
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be a finite number")
    return number


def _require_fields(payload: Dict[str, Any]):
    if any(not str(payload.get(field) or '').strip() for field in REQUIRED_FIELDS):
        raise ValidationError('region_name, region, country, office_name, address, and phone are required')


def _office_values(payload: Dict[str, Any]) -> Dict[str, Any]:
    values = {field: str(payload[field]).strip() for field in REQUIRED_FIELDS}
    values['emails'] = parse_list_field(payload.get('emails'), 'emails')
    if 'is_lab_facility' in payload:
        values['is_lab_facility'] = bool(parse_bool(payload['is_lab_facility'], False))
    if 'notes' in payload:
        values['notes'] = payload['notes'] or ''
    if 'image_url' in payload:
        values['image_url'] = payload['image_url'] or ''
    if 'region_order' in payload:
        values['region_order'] = parse_int(payload['region_order'], 0, 'region_order')
    if 'office_order' in payload:
        values['office_order'] = parse_int(payload['office_order'], 0, 'office_order')
    return values


def _upload_image(values: Dict[str, Any]):
    image = image_file('image')
    if image is None:
        return
    public_id = '-'.join(
        re.sub(r'\s+', '-', values[field].lower()) for field in ('region', 'country', 'office_name')
    )
    try:
        values['image_url'] = storage.upload(
            image.data, image.filename, image.mimetype,
            folder='contact-offices',
            public_id=public_id,
            resource_type='image'
        )
    except StorageError as e:
        logger.warning(f"Office image upload failed, keeping existing image_url: {e}")


def _translate(values: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    return translator.translate_fields({field: values.get(field) for field in TRANSLATED_FIELDS if values.get(field)})


def _get_office(office_id: str) -> ContactOffice:
    office = db.session.get(ContactOffice, office_id)
    if office is None:
        raise NotFoundError('Contact office not found')
    return office


def _grouped_offices():
    lang = request.args.get('lang')
    groups = OrderedDict()
    for office in ContactOffice.query.order_by(*ORDERING).all():
        data = overlay_translation(office.to_dict(), office.translations, lang, TRANSLATED_FIELDS)
        groups.setdefault(office.region_name, []).append(data)
    # grouped by the stored region_name; the display name inside each office may be translated
    return jsonify([{'region_name': name, 'offices': offices} for name, offices in groups.items()])


@contact_offices_bp.route('/api/contact-offices', methods=['GET'])
def grouped_contact_offices():
    return _grouped_offices()


@contact_offices_bp.route('/api/contacts', methods=['GET'])
def grouped_contacts():
    return _grouped_offices()


@contact_offices_bp.route('/api/contact-offices/admin', methods=['GET'])
@require_admin
def list_offices():
    query = ContactOffice.query
    for field in ('region_name', 'region', 'country'):
        if request.args.get(field):
            query = query.filter(getattr(ContactOffice, field) == request.args[field])
    if request.args.get('is_lab_facility') is not None:
        query = query.filter(ContactOffice.is_lab_facility.is_(parse_bool(request.args['is_lab_facility'], False)))

    offices = query.order_by(*ORDERING, desc(ContactOffice.created_at)).all()
    return success([office.to_dict() for office in offices])


@contact_offices_bp.route('/api/contact-offices/admin/<office_id>', methods=['GET'])
@require_admin
def get_office(office_id):
    return success(_get_office(office_id).to_dict())


@contact_offices_bp.route('/api/contact-offices/admin', methods=['POST'])
@require_admin
def create_office():
    payload = request_payload()
    _require_fields(payload)
    values = _office_values(payload)
    _upload_image(values)

    latitude = _coordinate(payload.get('latitude'), 'latitude')
    longitude = _coordinate(payload.get('longitude'), 'longitude')
    if latitude is not None:
        values['latitude'] = latitude
    if longitude is not None:
        values['longitude'] = longitude

    office = ContactOffice(**values)
    office.translations = _translate(values)
    db.session.add(office)
    db.session.commit()

    logger.info(f"Contact office created: {office.id} [{office.latitude}, {office.longitude}]")
    return success(office.to_dict(), status=201)


@contact_offices_bp.route('/api/contact-offices/admin/<office_id>', methods=['PUT'])
@require_admin
def update_office(office_id):
    office = _get_office(office_id)
    payload = request_payload()
    _require_fields(payload)
    values = _office_values(payload)
    _upload_image(values)

    if 'latitude' in payload:
        values['latitude'] = _coordinate(payload['latitude'], 'latitude')
    if 'longitude' in payload:
        values['longitude'] = _coordinate(payload['longitude'], 'longitude')

    fresh = _translate(values)
    for column, value in values.items():
        setattr(office, column, value)
    office.coordinates_explicit = (values.get('latitude') is not None
                                   and values.get('longitude') is not None)
    if fresh:
        office.translations = merge_translations(office.translations, fresh)

    db.session.commit()
    logger.info(f"Contact office updated: {office.id} [{office.latitude}, {office.longitude}]")
    return success(office.to_dict())


@contact_offices_bp.route('/api/contact-offices/admin/<office_id>', methods=['DELETE'])
@require_admin
def delete_office(office_id):
    office = _get_office(office_id)
    db.session.delete(office)
    db.session.commit()
    return success({'id': office_id})


@contact_offices_bp.route('/api/contact-offices/admin/<office_id>/geocode', methods=['POST'])
@require_admin
def geocode_office(office_id):
    office = _get_office(office_id)
    if not office.address:
        raise ValidationError('Office address is required for geocoding')

    logger.info(f"Manually geocoding office: {office.office_name} ({office.address})")
    result = geocoder.lookup(office.address, force=True)
    if result is None:
        raise ApiError(400, 'Geocoding failed. Please check the address format.')

    office.latitude = result.latitude
    office.longitude = result.longitude
    db.session.commit()
    return success(office.to_dict(), message='Coordinates geocoded successfully')
