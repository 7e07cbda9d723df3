# middleware/security.py
"""
Security Middleware for Request Processing
"""

import logging
from functools import wraps
from typing import Optional

from flask import current_app, g, request

from core.database_models import Admin
from core.errors import ApiError, AuthenticationError
from core.security_manager import TokenClaims, TokenSource, normalize_email, security_manager

logger = logging.getLogger(__name__)


def security_headers(response):
    """Add security headers to all responses"""
    for header, value in current_app.config.get('SECURITY_HEADERS', {}).items():
        response.headers.setdefault(header, value)

    csp = current_app.config.get('CSP_POLICY')
    if csp:
        response.headers.setdefault('Content-Security-Policy',
                                    '; '.join(f"{directive} {value}" for directive, value in csp.items()))
    return response


def _bearer_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def authenticate_admin() -> TokenClaims:
    """
    Resolve the admin behind the request's bearer token.

    OTP tokens are only ever issued to ADMIN_EMAIL and stay valid without an
    Admin row; password tokens require the Admin to still exist and be active.
    """
    token = _bearer_token()
    if token is None:
        raise AuthenticationError('Authentication required')

    claims, error = security_manager.verify_token(token)
    if claims is None:
        security_manager.log_security_event('invalid_admin_token', {'reason': error})
        raise AuthenticationError(error)

    if claims.source == TokenSource.OTP:
        admin_email = normalize_email(current_app.config.get('ADMIN_EMAIL'))
        if claims.email != admin_email:
            raise AuthenticationError('Invalid token')
        return claims

    admin = Admin.query.filter_by(email=claims.email).first()
    if admin is None:
        raise AuthenticationError('Invalid token')
    if not admin.is_active:
        raise ApiError(403, 'Admin account is disabled')
    return claims


def is_admin_request() -> bool:
    """Whether the request carries valid admin credentials, without failing it"""
    if _bearer_token() is None:
        return False
    try:
        g.admin = authenticate_admin()
    except ApiError:
        return False
    return True


def require_admin(f):
    """Decorator to require a valid admin bearer token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.admin = authenticate_admin()
        except ApiError:
            security_manager.log_security_event('unauthorized_access_attempt', {
                'endpoint': request.endpoint,
                'method': request.method
            })
            raise
        return f(*args, **kwargs)
    return decorated_function
