import pytest

from core.database_models import IndustryStat, Section
from core.extensions import db


@pytest.fixture
def section(app):
    with app.app_context():
        section = Section(title='Cargo Tracking', body_text='Track every container.', images=['a.png'])
        db.session.add(section)
        db.session.commit()
        return section.id


def test_static_translations_for_all_languages(client):
    data = client.get('/api/translate/static').get_json()['data']
    assert data['supportedLanguages'] == ['en', 'fr', 'pt', 'es', 'ru', 'zh']
    assert set(data['translations']) == {'en', 'fr', 'pt', 'es', 'ru'}


def test_static_translations_for_one_language(client):
    data = client.get('/api/translate/static/FR').get_json()['data']
    assert data['language'] == 'fr'
    assert 'navbar' in data['translations']
    # no stats stored: the built-in list is served
    assert len(data['translations']['industryStats']) == 4


@pytest.mark.parametrize('lang', ['en', 'fr', 'pt', 'es', 'ru'])
def test_static_translations_carry_contact_form_copy(client, lang):
    texts = client.get(f"/api/translate/static/{lang}").get_json()['data']['translations']
    contact = texts['pages']['contact']
    assert set(contact['labels']) == {'firstName', 'lastName', 'email', 'phone', 'company',
                                      'industry', 'service', 'message', 'consent'}
    assert {'firstName', 'email', 'selectIndustry', 'selectService', 'message'} <= set(contact['placeholders'])
    assert set(contact['cta']) == {'send', 'sending'}
    assert contact['formDescription'] and contact['supportTitle'] and contact['responseGuaranteeTitle']
    assert 'title' in texts['pages']['about']
    assert len(texts['footer']['services']['list']) == 6
    assert len(texts['services']['servicesList']) == 6


def test_static_english_contact_labels(client):
    contact = client.get('/api/translate/static/en').get_json()['data']['translations']['pages']['contact']
    assert contact['labels']['firstName'] == 'First Name *'
    assert contact['placeholders']['email'] == 'john.doe@company.com'


def test_static_translations_use_stored_industry_stats(app, client):
    with app.app_context():
        db.session.add(IndustryStat(number='120+', label='Ports', description='Ports covered', order=1,
                                    translations={'es': {'label': 'Puertos', 'description': ''}}))
        db.session.add(IndustryStat(number='9', label='Hidden', description='Inactive', is_active=False))
        db.session.commit()

    stats = client.get('/api/translate/static/es').get_json()['data']['translations']['industryStats']
    assert stats == [{'number': '120+', 'label': 'Puertos', 'description': 'Ports covered'}]


def test_static_translations_unknown_language(client):
    response = client.get('/api/translate/static/de')
    assert response.status_code == 400
    assert response.get_json()['message'].startswith('Unsupported language')


def test_static_translations_missing_for_chinese(client):
    response = client.get('/api/translate/static/zh')
    assert response.status_code == 404
    assert response.get_json()['message'] == 'Translations not found for the specified language'


def test_slides(client):
    data = client.get('/api/translate/slides/pt').get_json()['data']
    assert data['language'] == 'pt'
    assert data['count'] == len(data['slides']) == 3
    assert client.get('/api/translate/slides/zh').status_code == 404


def test_section_in_english_returns_source(client, section):
    data = client.get(f"/api/translate/{section}?lang=en").get_json()['data']
    assert data == {'title': 'Cargo Tracking', 'bodyText': 'Track every container.', 'images': ['a.png'],
                    'language': 'en'}


def test_section_translation_is_machine_translated_then_stored(app, client, section, fake_translator):
    first = client.get(f"/api/translate/{section}?lang=fr").get_json()['data']
    assert first['source'] == 'api'
    assert first['title'] == '[fr] Cargo Tracking'
    assert first['images'] == ['a.png']

    calls = len(fake_translator.calls)
    second = client.get(f"/api/translate/{section}?lang=fr").get_json()['data']
    assert second['source'] == 'db'
    assert second['bodyText'] == '[fr] Track every container.'
    assert len(fake_translator.calls) == calls

    with app.app_context():
        assert db.session.get(Section, section).translations['fr']['title'] == '[fr] Cargo Tracking'


def test_section_translation_provider_failure(client, section, fake_translator):
    fake_translator.fail = True
    response = client.get(f"/api/translate/{section}?lang=es")
    assert response.status_code == 502
    assert response.get_json()['message'] == 'Translation service unavailable'


def test_section_translation_not_configured(client, section):
    assert client.get(f"/api/translate/{section}?lang=es").status_code == 502


def test_section_translation_errors(client, section):
    assert client.get(f"/api/translate/{section}?lang=de").status_code == 400
    assert client.get('/api/translate/missing?lang=fr').status_code == 404
