# config/security.py
"""
Security Configuration for the CBM site backend
"""

import os
from datetime import timedelta


class SecurityConfig:
    """Security configuration settings"""

    # Session / token settings
    SECRET_KEY = os.environ.get('SECRET_KEY')
    ADMIN_TOKEN_MAX_AGE = int(timedelta(hours=8).total_seconds())
    ADMIN_TOKEN_SALT = 'cbm-admin-auth'

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = 'memory://'
    RATELIMIT_STRATEGY = 'fixed-window'
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_DEFAULT = '120 per minute'
    AUTH_RATE_LIMIT = '5 per minute'

    # OTP settings
    OTP_LENGTH = 6
    OTP_TTL_SECONDS = 5 * 60

    # Content Security Policy
    CSP_POLICY = {
        'default-src': "'self'",
        'img-src': "'self' data: https:",
        'object-src': "'none'",
        'base-uri': "'self'",
        'frame-ancestors': "'none'",
    }

    # Security headers
    SECURITY_HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'DENY',
        'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
        'Referrer-Policy': 'strict-origin-when-cross-origin',
        'Cross-Origin-Resource-Policy': 'cross-origin',
    }

    # File upload security
    MAX_CONTENT_LENGTH = 60 * 1024 * 1024  # whole request, 5 documents of 10MB plus form fields
    MAX_FILE_SIZE_BYTES = int(os.environ.get('MAX_FILE_SIZE_BYTES', 10 * 1024 * 1024))
    RESUME_MAX_BYTES = 5 * 1024 * 1024
    VERIFY_DOC_MAX_BYTES = 10 * 1024 * 1024
    VERIFY_DOC_MAX_FILES = 5
    SECTION_MAX_IMAGES = 10

    IMAGE_MIME_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp'}
    RESUME_MIME_TYPES = {
        'application/pdf',
        'application/msword',
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    }
    VERIFY_DOC_MIME_TYPES = RESUME_MIME_TYPES | {'image/png', 'image/jpeg'}
