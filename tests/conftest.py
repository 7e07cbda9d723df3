"""Shared fixtures: a fresh app and in-memory database per test, plus fakes
for the SMTP, translation and geocoding integrations."""

import pytest
import requests

from app import create_app
from core.extensions import db
from core.security_manager import TokenSource, security_manager
from services.geocoding import geocoder
from services.storage import storage
from services.translation import translator
from tasks import email_sender


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeTranslateSession:
    """Answers translate calls with the text prefixed by the target language"""

    def __init__(self):
        self.calls = []
        self.fail = False

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append(json)
        if self.fail:
            return FakeResponse({'error': 'quota'}, status_code=500)
        translated = f"[{json['target']}] {json['q']}"
        return FakeResponse({'data': {'translations': [{'translatedText': translated}]}})


class FakeGeocoderSession:
    """Returns coordinates for the queries registered in ``results``"""

    def __init__(self):
        self.results = {}
        self.queries = []

    def get(self, url, params=None, headers=None, timeout=None):
        query = params['q']
        self.queries.append(query)
        if query in self.results:
            lat, lon = self.results[query]
            return FakeResponse([{'lat': str(lat), 'lon': str(lon)}])
        return FakeResponse([])


@pytest.fixture
def app(tmp_path):
    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')
    storage.upload_folder = app.config['UPLOAD_FOLDER']

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_token(app):
    with app.app_context():
        return security_manager.issue_token(app.config['ADMIN_EMAIL'], TokenSource.OTP)


@pytest.fixture
def auth_headers(admin_token):
    return {'Authorization': f"Bearer {admin_token}"}


@pytest.fixture
def smtp_outbox(app, monkeypatch):
    """Configure SMTP credentials and capture outgoing MIME messages"""
    outbox = []

    async def fake_send(msg, smtp_config):
        outbox.append(msg)
        return {'success': True, 'response': '250 Message accepted', 'message_id': msg['Message-ID']}

    monkeypatch.setattr(email_sender, '_async_send_smtp', fake_send)
    app.config.update(SMTP_USER='mailer@example.com', SMTP_PASS='app-password')
    return outbox


@pytest.fixture
def fake_translator(app, monkeypatch):
    session = FakeTranslateSession()
    monkeypatch.setattr(translator, 'api_key', 'test-key')
    monkeypatch.setattr(translator, '_enabled', True)
    monkeypatch.setattr(translator, 'session', session)
    return session


@pytest.fixture
def fake_geocoder(app, monkeypatch):
    session = FakeGeocoderSession()
    monkeypatch.setattr(geocoder, 'session', session)
    monkeypatch.setattr(geocoder, 'delay_seconds', 0)
    monkeypatch.setattr(geocoder, 'enabled', True)
    return session
