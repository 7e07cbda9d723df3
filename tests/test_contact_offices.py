import pytest

from core.database_models import ContactOffice
from core.extensions import db

OFFICE = {
    'region_name': 'West Africa',
    'region': 'West Africa',
    'country': 'Ghana',
    'office_name': 'Accra Office',
    'address': '12 Liberation Road, Accra, Ghana',
    'phone': '+233 30 000 0000',
    'emails': ['accra@example.com'],
}


def _create(client, auth_headers, **fields):
    payload = dict(OFFICE)
    payload.update(fields)
    response = client.post('/api/contact-offices/admin', json=payload, headers=auth_headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


def test_create_requires_fields(client, auth_headers):
    payload = dict(OFFICE, phone='')
    response = client.post('/api/contact-offices/admin', json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json()['message'] == \
        'region_name, region, country, office_name, address, and phone are required'


def test_admin_routes_require_token(client):
    assert client.get('/api/contact-offices/admin').status_code == 401
    assert client.post('/api/contact-offices/admin', json=OFFICE).status_code == 401


def test_create_with_explicit_coordinates_skips_geocoding(client, auth_headers, fake_geocoder):
    office = _create(client, auth_headers, latitude='5.6', longitude=-0.18)
    assert office['latitude'] == 5.6
    assert office['longitude'] == -0.18
    assert fake_geocoder.queries == []


def test_create_geocodes_missing_coordinates(client, auth_headers, fake_geocoder):
    fake_geocoder.results['12 Liberation Road, Accra'] = (5.55, -0.2)
    office = _create(client, auth_headers)
    assert (office['latitude'], office['longitude']) == (5.55, -0.2)
    assert fake_geocoder.queries == ['12 Liberation Road, Accra, Ghana', '12 Liberation Road, Accra']


def test_geocoding_disabled_leaves_coordinates_empty(client, auth_headers):
    office = _create(client, auth_headers)
    assert office['latitude'] is None


def test_geocoding_failure_does_not_block_create(client, auth_headers, fake_geocoder):
    office = _create(client, auth_headers)
    assert office['latitude'] is None
    assert len(fake_geocoder.queries) == 3


def test_invalid_coordinate_is_rejected(client, auth_headers):
    response = client.post('/api/contact-offices/admin', json=dict(OFFICE, latitude='north'), headers=auth_headers)
    assert response.status_code == 400


def test_address_change_regeocodes(client, auth_headers, fake_geocoder):
    office = _create(client, auth_headers, latitude=1, longitude=1)
    fake_geocoder.results['1 Marine Drive, Lagos'] = (6.45, 3.4)

    response = client.put(f"/api/contact-offices/admin/{office['id']}",
                          json=dict(OFFICE, address='1 Marine Drive, Lagos'), headers=auth_headers)
    data = response.get_json()['data']
    assert (data['latitude'], data['longitude']) == (6.45, 3.4)


def test_address_change_with_new_coordinates_keeps_them(client, auth_headers, fake_geocoder):
    office = _create(client, auth_headers, latitude=1, longitude=1)
    response = client.put(f"/api/contact-offices/admin/{office['id']}",
                          json=dict(OFFICE, address='Elsewhere', latitude=2, longitude=3), headers=auth_headers)
    data = response.get_json()['data']
    assert (data['latitude'], data['longitude']) == (2, 3)
    assert fake_geocoder.queries == []


def test_address_change_with_resent_coordinates_keeps_them(client, auth_headers, fake_geocoder):
    office = _create(client, auth_headers, latitude=10.0, longitude=20.0)
    fake_geocoder.results['2 Rue B, Lyon, France'] = (45.0, 4.0)

    response = client.put(f"/api/contact-offices/admin/{office['id']}",
                          json=dict(OFFICE, address='2 Rue B, Lyon, France', latitude=10.0, longitude=20.0),
                          headers=auth_headers)
    data = response.get_json()['data']
    assert data['address'] == '2 Rue B, Lyon, France'
    assert (data['latitude'], data['longitude']) == (10.0, 20.0)
    assert fake_geocoder.queries == []


def test_clearing_coordinates_regeocodes(client, auth_headers, fake_geocoder):
    office = _create(client, auth_headers, latitude=1, longitude=1)
    fake_geocoder.results[OFFICE['address']] = (5.0, -1.0)
    response = client.put(f"/api/contact-offices/admin/{office['id']}",
                          json=dict(OFFICE, latitude='', longitude=''), headers=auth_headers)
    data = response.get_json()['data']
    assert (data['latitude'], data['longitude']) == (5.0, -1.0)


def test_manual_geocode_ignores_toggle(app, client, auth_headers, fake_geocoder, monkeypatch):
    office = _create(client, auth_headers, latitude=1, longitude=1)
    from services.geocoding import geocoder
    monkeypatch.setattr(geocoder, 'enabled', False)

    failed = client.post(f"/api/contact-offices/admin/{office['id']}/geocode", headers=auth_headers)
    assert failed.status_code == 400
    assert failed.get_json()['message'] == 'Geocoding failed. Please check the address format.'

    fake_geocoder.results[OFFICE['address']] = (5.6, -0.19)
    response = client.post(f"/api/contact-offices/admin/{office['id']}/geocode", headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['latitude'] == 5.6


def test_public_listing_is_grouped_by_region(client, auth_headers):
    _create(client, auth_headers, office_name='Lagos', region_name='West Africa', region_order=1, office_order=2,
            latitude=1, longitude=1)
    _create(client, auth_headers, office_name='Accra', region_name='West Africa', region_order=1, office_order=1,
            latitude=1, longitude=1)
    _create(client, auth_headers, office_name='Dubai', region_name='Middle East', region_order=0,
            latitude=1, longitude=1)

    for url in ('/api/contact-offices', '/api/contacts'):
        groups = client.get(url).get_json()
        assert [group['region_name'] for group in groups] == ['Middle East', 'West Africa']
        assert [office['office_name'] for office in groups[1]['offices']] == ['Accra', 'Lagos']


def test_public_listing_overlays_translation(app, client, auth_headers):
    office = _create(client, auth_headers, latitude=1, longitude=1)
    with app.app_context():
        stored = db.session.get(ContactOffice, office['id'])
        stored.translations = {'fr': {'office_name': 'Bureau d\'Accra', 'country': ''}}
        db.session.commit()

    groups = client.get('/api/contact-offices?lang=fr').get_json()
    entry = groups[0]['offices'][0]
    assert entry['office_name'] == "Bureau d'Accra"
    assert entry['country'] == 'Ghana'
    assert groups[0]['region_name'] == 'West Africa'


def test_admin_list_filters_and_delete(client, auth_headers):
    lab = _create(client, auth_headers, is_lab_facility=True, latitude=1, longitude=1)
    _create(client, auth_headers, country='Nigeria', latitude=1, longitude=1)

    labs = client.get('/api/contact-offices/admin?is_lab_facility=true', headers=auth_headers).get_json()['data']
    assert [office['id'] for office in labs] == [lab['id']]

    nigeria = client.get('/api/contact-offices/admin?country=Nigeria', headers=auth_headers).get_json()['data']
    assert len(nigeria) == 1

    deleted = client.delete(f"/api/contact-offices/admin/{lab['id']}", headers=auth_headers)
    assert deleted.get_json()['data'] == {'id': lab['id']}
    assert client.get(f"/api/contact-offices/admin/{lab['id']}", headers=auth_headers).status_code == 404


@pytest.mark.usefixtures('fake_translator')
def test_create_translates_office_fields(client, auth_headers):
    office = _create(client, auth_headers, latitude=1, longitude=1, notes='Lab on site')
    assert office['translations']['pt']['office_name'] == '[pt] Accra Office'
    assert office['translations']['pt']['notes'] == '[pt] Lab on site'
    assert 'phone' not in office['translations']['pt']
