# api/inquiries.py
"""
Inquiry API: contact form and document verification requests, both
forwarded to the admin inbox by email
"""

import logging

from flask import Blueprint, request

from api.responses import success
from core.errors import ValidationError
from core.pagination import parse_bool
from core.security_manager import is_valid_email
from middleware.upload import request_payload, verification_documents
from services.email import email_service

inquiries_bp = Blueprint('inquiries', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

CONTACT_REQUIRED_FIELDS = ('firstName', 'lastName', 'email', 'company', 'message')
VERIFICATION_REQUIRED_FIELDS = ('firstName', 'lastName', 'email', 'location')


@inquiries_bp.route('/contact', methods=['POST'])
def contact():
    payload = request_payload()
    if any(not payload.get(field) for field in CONTACT_REQUIRED_FIELDS):
        raise ValidationError('firstName, lastName, email, company and message are required')
    if not is_valid_email(payload['email']):
        raise ValidationError('Please provide a valid email address')

    inquiry = {
        'firstName': payload['firstName'],
        'lastName': payload['lastName'],
        'email': payload['email'],
        'phone': payload.get('phone'),
        'company': payload['company'],
        'industry': payload.get('industry'),
        'service': payload.get('service'),
        'message': payload['message'],
        'consent': bool(parse_bool(payload.get('consent'), False)),
    }
    email_service.send_contact_inquiry(inquiry)
    return success(message='Inquiry sent successfully')


@inquiries_bp.route('/verify-doc', methods=['POST'])
def verify_document():
    form = request.form.to_dict()
    if any(not form.get(field) for field in VERIFICATION_REQUIRED_FIELDS):
        raise ValidationError('firstName, lastName, email, and location are required')

    documents = verification_documents('documents')
    email_service.send_document_verification(form, documents)
    logger.info(f"Verification request from {form['email']} with {len(documents)} documents")
    return success(message='Verification request sent successfully')
