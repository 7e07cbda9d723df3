# core/security_manager.py
"""
Security Manager for the CBM site backend
Implements:
- Password hashing and verification (PBKDF2-SHA256)
- Signed, time-limited admin bearer tokens
- Email address validation
- Security event logging
"""

import base64
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from email_validator import EmailNotValidError, validate_email
from flask import request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

logger = logging.getLogger(__name__)

PASSWORD_SCHEME = 'pbkdf2_sha256'
PASSWORD_ITERATIONS = 200000


class TokenSource(Enum):
    """How an admin token was obtained"""
    OTP = "otp"
    PASSWORD = "password"


@dataclass
class TokenClaims:
    """Decoded admin token"""
    email: str
    source: TokenSource
    issued_at: datetime


def _derive(password: str, salt: str, iterations: int) -> str:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt.encode(),
        iterations=iterations,
        backend=default_backend()
    )
    return base64.b64encode(kdf.derive(password.encode())).decode()


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """
    Hash password with a random salt

    Returns:
        Encoded hash ``pbkdf2_sha256$<iterations>$<salt>$<hash>``
    """
    if salt is None:
        salt = secrets.token_hex(16)
    hashed = _derive(password, salt, PASSWORD_ITERATIONS)
    return f"{PASSWORD_SCHEME}${PASSWORD_ITERATIONS}${salt}${hashed}"


def is_password_hash(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(f"{PASSWORD_SCHEME}$") and value.count('$') == 3


def verify_password(password: str, encoded: str) -> bool:
    """Verify a candidate password against an encoded hash"""
    try:
        scheme, iterations, salt, hashed = encoded.split('$')
    except (AttributeError, ValueError):
        return False
    if scheme != PASSWORD_SCHEME:
        return False
    computed = _derive(password or '', salt, int(iterations))
    return hmac.compare_digest(hashed, computed)


def hash_code(code: str) -> str:
    """SHA-256 hex digest used to store one-time codes"""
    return hashlib.sha256(code.encode('utf-8')).hexdigest()


def normalize_email(email: Optional[str]) -> str:
    return (email or '').strip().lower()


def is_valid_email(email: Optional[str]) -> bool:
    """Syntax-only email check (no DNS lookups)"""
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
        return True
    except EmailNotValidError:
        return False


class SecurityManager:
    """
    Issues and verifies admin tokens and records security events
    """

    def __init__(self, app=None):
        self.serializer = None
        self.max_age = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.serializer = URLSafeTimedSerializer(
            app.config['SECRET_KEY'],
            salt=app.config.get('ADMIN_TOKEN_SALT', 'cbm-admin-auth')
        )
        self.max_age = app.config.get('ADMIN_TOKEN_MAX_AGE', 8 * 3600)
        app.extensions['security_manager'] = self
        logger.info("SecurityManager initialized")

    def issue_token(self, email: str, source: TokenSource) -> str:
        return self.serializer.dumps({
            'email': normalize_email(email),
            'src': source.value,
            'iat': datetime.utcnow().isoformat(),
        })

    def verify_token(self, token: str) -> Tuple[Optional[TokenClaims], Optional[str]]:
        """
        Decode a bearer token

        Returns:
            Tuple of (claims, error message); exactly one of them is set
        """
        try:
            payload = self.serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            return None, 'Token expired'
        except BadSignature:
            return None, 'Invalid token'

        try:
            claims = TokenClaims(
                email=payload['email'],
                source=TokenSource(payload['src']),
                issued_at=datetime.fromisoformat(payload['iat'])
            )
        except (KeyError, TypeError, ValueError):
            return None, 'Invalid token'
        return claims, None

    def log_security_event(self, event_type: str, details: Dict[str, Any] = None):
        """Log a security-relevant event with request metadata"""
        details = dict(details or {})
        try:
            details.setdefault('ip', request.remote_addr)
            details.setdefault('endpoint', request.endpoint)
        except RuntimeError:
            # outside of a request (CLI commands)
            pass
        logger.info(f"Security event {event_type}: {details}")


security_manager = SecurityManager()


def init_security_manager(app) -> SecurityManager:
    """Bind the module-level security manager to the Flask app"""
    security_manager.init_app(app)
    return security_manager
