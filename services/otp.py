# services/otp.py
"""
One-time password store for admin email login.

Codes are kept only as SHA-256 hashes with an expiry and are consumed on
successful verification. The default backend is a process-local map, so
with several app instances a code is only valid on the instance that
issued it; set ``OTP_BACKEND=redis`` to share codes through Redis.
"""

import json
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

import redis

from core.security_manager import hash_code, normalize_email
from services.cache import create_redis_client

logger = logging.getLogger(__name__)


def generate_otp(length: int = 6) -> str:
    return ''.join(secrets.choice('0123456789') for _ in range(length))


@dataclass
class OtpResult:
    success: bool
    message: Optional[str] = None


class OtpStore:
    """Issues and verifies hashed one-time codes keyed by email"""

    def __init__(self, ttl_seconds: int = 300, length: int = 6, redis_client: Optional[redis.Redis] = None):
        self.ttl_seconds = ttl_seconds
        self.length = length
        self.redis_client = redis_client
        self._entries: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def init_app(self, app):
        self.ttl_seconds = app.config.get('OTP_TTL_SECONDS', 300)
        self.length = app.config.get('OTP_LENGTH', 6)
        self.redis_client = None
        if app.config.get('OTP_BACKEND') == 'redis':
            if not app.config.get('REDIS_URL'):
                raise RuntimeError('OTP_BACKEND=redis requires REDIS_URL')
            self.redis_client = create_redis_client(app.config['REDIS_URL'])
        self.clear()
        app.extensions['otp_store'] = self

    @staticmethod
    def _key(email: str) -> str:
        return f"otp:{normalize_email(email)}"

    def _save(self, email: str, entry: dict):
        if self.redis_client is not None:
            self.redis_client.set(self._key(email), json.dumps(entry), ex=self.ttl_seconds)
            return
        with self._lock:
            self._entries[self._key(email)] = entry

    def _load(self, email: str) -> Optional[dict]:
        if self.redis_client is not None:
            raw = self.redis_client.get(self._key(email))
            return json.loads(raw) if raw else None
        with self._lock:
            return self._entries.get(self._key(email))

    def _discard(self, email: str):
        if self.redis_client is not None:
            self.redis_client.delete(self._key(email))
            return
        with self._lock:
            self._entries.pop(self._key(email), None)

    def issue(self, email: str) -> str:
        """Create a fresh code for ``email``, replacing any previous one"""
        code = generate_otp(self.length)
        self._save(email, {
            'code': hash_code(code),
            'expires_at': time.time() + self.ttl_seconds,
        })
        logger.info(f"OTP issued for {normalize_email(email)}, expires in {self.ttl_seconds}s")
        return code

    def verify(self, email: str, code: str) -> OtpResult:
        entry = self._load(email)
        if not entry:
            return OtpResult(False, 'No OTP requested')
        if time.time() > entry['expires_at']:
            self._discard(email)
            return OtpResult(False, 'OTP expired')
        if hash_code(str(code).strip()) != entry['code']:
            return OtpResult(False, 'Invalid OTP')
        self._discard(email)
        return OtpResult(True)

    def clear(self):
        with self._lock:
            self._entries.clear()


otp_store = OtpStore()
