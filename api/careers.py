# api/careers.py
"""
Careers API: job postings and applications
"""

import logging
from datetime import datetime
from typing import Any, Dict

from flask import Blueprint, request
from sqlalchemy import asc, desc

from api.responses import success
from core.database_models import Career
from core.errors import NotFoundError, ValidationError
from core.extensions import db
from core.localization import overlay_translation
from core.pagination import parse_bool, parse_int
from core.security_manager import is_valid_email
from middleware.security import is_admin_request, require_admin
from middleware.upload import parse_list_field, request_payload, resume_file
from services.email import email_service
from services.translation import merge_translations, translator

careers_bp = Blueprint('careers', __name__, url_prefix='/api/careers')
logger = logging.getLogger(__name__)

CAREER_FIELDS = {
    'title': 'title',
    'department': 'department',
    'location': 'location',
    'employmentType': 'employment_type',
    'description': 'description',
    'requirements': 'requirements',
    'isActive': 'is_active',
    'order': 'order',
}
TRANSLATED_FIELDS = ('title', 'description', 'requirements')

APPLICATION_REQUIRED_FIELDS = (
    'firstName', 'lastName', 'email', 'phone', 'position', 'department', 'experience', 'coverLetter'
)


def _career_values(payload: Dict[str, Any]) -> Dict[str, Any]:
    values = {}
    for field, column in CAREER_FIELDS.items():
        if field not in payload:
            continue
        value = payload[field]
        if field == 'requirements':
            value = parse_list_field(value, field)
        elif field == 'isActive':
            value = parse_bool(value, default=True)
        elif field == 'order':
            value = parse_int(value, 0, 'order')
        elif value is not None:
            value = str(value)
        values[column] = value
    return values


def _translation_source(payload: Dict[str, Any], values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        field: values[CAREER_FIELDS[field]]
        for field in TRANSLATED_FIELDS
        if field in payload and values.get(CAREER_FIELDS[field])
    }


def _get_career(career_id: str) -> Career:
    career = db.session.get(Career, career_id)
    if career is None:
        raise NotFoundError('Job posting not found')
    return career


@careers_bp.route('', methods=['GET'])
@careers_bp.route('/', methods=['GET'])
def list_careers():
    query = Career.query
    if not (parse_bool(request.args.get('includeInactive'), False) and is_admin_request()):
        query = query.filter(Career.is_active.is_(True))
    careers = query.order_by(asc(Career.order), desc(Career.created_at)).all()

    lang = request.args.get('lang')
    return success([
        overlay_translation(career.to_dict(), career.translations, lang, TRANSLATED_FIELDS)
        for career in careers
    ])


@careers_bp.route('/<career_id>', methods=['GET'])
def get_career(career_id):
    career = _get_career(career_id)
    if not career.is_active and not is_admin_request():
        raise NotFoundError('Job posting not found')
    return success(overlay_translation(career.to_dict(), career.translations,
                                       request.args.get('lang'), TRANSLATED_FIELDS))


@careers_bp.route('', methods=['POST'])
@careers_bp.route('/', methods=['POST'])
@require_admin
def create_career():
    payload = request_payload()
    values = _career_values(payload)
    values.setdefault('title', '')
    career = Career(**values)
    career.translations = translator.translate_fields(
        _translation_source(payload, values), list_fields=('requirements',)
    )
    db.session.add(career)
    db.session.commit()
    logger.info(f"Job posting created: {career.title}")
    return success(career.to_dict(), status=201, message='Job posting created successfully')


@careers_bp.route('/<career_id>', methods=['PUT'])
@require_admin
def update_career(career_id):
    career = _get_career(career_id)
    payload = request_payload()
    values = _career_values(payload)

    for column, value in values.items():
        setattr(career, column, value)
    fresh = translator.translate_fields(
        _translation_source(payload, values), list_fields=('requirements',)
    )
    if fresh:
        career.translations = merge_translations(career.translations, fresh)

    db.session.commit()
    return success(career.to_dict(), message='Job posting updated successfully')


@careers_bp.route('/<career_id>', methods=['DELETE'])
@require_admin
def delete_career(career_id):
    career = _get_career(career_id)
    db.session.delete(career)
    db.session.commit()
    logger.info(f"Job posting deleted: {career_id}")
    return success(message='Job posting deleted successfully')


@careers_bp.route('/apply', methods=['POST'])
def apply():
    """Email an application with its resume to the admin and confirm to the applicant"""
    application = request.form.to_dict()

    missing = [field for field in APPLICATION_REQUIRED_FIELDS if not application.get(field)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if not is_valid_email(application['email']):
        raise ValidationError('Invalid email format')

    resume = resume_file('resume')

    admin_result = email_service.send_job_application(application, resume)

    try:
        confirmation_sent = email_service.send_application_confirmation(application).sent
    except Exception as e:
        logger.error(f"Confirmation email to {application['email']} failed: {e}")
        confirmation_sent = False

    logger.info(
        f"Job application submitted for {application['position']} by "
        f"{application['firstName']} {application['lastName']} "
        f"(admin email sent={admin_result.sent}, confirmation sent={confirmation_sent})"
    )
    return success({
        'adminEmailSent': admin_result.sent,
        'confirmationEmailSent': confirmation_sent,
        'applicationId': admin_result.message_id,
    }, message='Application submitted successfully')


@careers_bp.route('/status', methods=['GET'])
def application_status():
    if not request.args.get('email') or not request.args.get('applicationId'):
        raise ValidationError('Email and application ID are required')
    return success({
        'status': 'Under Review',
        'submittedDate': datetime.utcnow().isoformat(),
        'estimatedResponseTime': '5-7 business days',
    }, message='Application status retrieved')
