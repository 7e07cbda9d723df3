# api/admin_auth.py
"""
Admin Authentication API: emailed one-time codes and password login
"""

import logging

from flask import Blueprint, current_app, g

from api.responses import success
from core.database_models import Admin, isoformat
from core.errors import ApiError, AuthenticationError, ValidationError
from core.extensions import db, limiter
from core.security_manager import TokenSource, normalize_email, security_manager
from middleware.security import require_admin
from middleware.upload import request_payload
from services.email import email_service
from services.otp import otp_store

admin_auth_bp = Blueprint('admin_auth', __name__, url_prefix='/api/admin/auth')
logger = logging.getLogger(__name__)


def _auth_rate_limit():
    return current_app.config['AUTH_RATE_LIMIT']


def _admin_email() -> str:
    email = current_app.config.get('ADMIN_EMAIL')
    if not email:
        logger.error("OTP request failed - ADMIN_EMAIL not configured")
        raise ApiError(500, 'ADMIN_EMAIL is not configured')
    return normalize_email(email)


@admin_auth_bp.route('/request-otp', methods=['POST'])
@limiter.limit(_auth_rate_limit)
def request_otp():
    """
    Issue a login code for ADMIN_EMAIL and email it in the background.

    The response never waits for SMTP; delivery problems are only logged.
    """
    email = _admin_email()
    code = otp_store.issue(email)

    try:
        queued = email_service.send_otp(email, code, otp_store.ttl_seconds)
    except Exception as e:
        logger.error(f"Background OTP email error for {email}: {e}", exc_info=True)
        queued = False

    security_manager.log_security_event('otp_requested', {'email': email, 'queued': queued})
    return success(message='OTP sent')


@admin_auth_bp.route('/verify-otp', methods=['POST'])
@limiter.limit(_auth_rate_limit)
def verify_otp():
    email = _admin_email()
    code = request_payload().get('code')
    if not code:
        raise ValidationError('Code is required')

    result = otp_store.verify(email, str(code))
    if not result.success:
        security_manager.log_security_event('otp_failed', {'email': email, 'reason': result.message})
        raise ValidationError(result.message)

    token = security_manager.issue_token(email, TokenSource.OTP)
    security_manager.log_security_event('otp_login', {'email': email})
    return success({'token': token})


@admin_auth_bp.route('/login', methods=['POST'])
@limiter.limit(_auth_rate_limit)
def login():
    data = request_payload()
    email = normalize_email(data.get('email'))
    password = data.get('password') or ''
    if not email or not password:
        raise ValidationError('Email and password are required')

    admin = Admin.query.filter_by(email=email).first()
    if admin is None:
        security_manager.log_security_event('login_failed', {'reason': 'unknown_email', 'email': email})
        raise AuthenticationError('Invalid email or password')

    if not admin.is_active:
        security_manager.log_security_event('login_blocked', {'email': email})
        raise ApiError(403, 'Your account has been blocked. Please contact administrator.')

    if not admin.check_password(password):
        security_manager.log_security_event('login_failed', {'reason': 'invalid_password', 'email': email})
        raise AuthenticationError('Invalid email or password')

    admin.update_last_login()
    db.session.commit()

    token = security_manager.issue_token(admin.email, TokenSource.PASSWORD)
    logger.info(f"Admin login successful: {admin.email}")
    return success({
        'token': token,
        'admin': {
            'email': admin.email,
            'lastLogin': isoformat(admin.last_login),
        },
    }, message='Login successful')


@admin_auth_bp.route('/me', methods=['GET'])
@require_admin
def me():
    claims = g.admin
    return success({
        'email': claims.email,
        'source': claims.source.value,
        'issuedAt': isoformat(claims.issued_at),
    })
