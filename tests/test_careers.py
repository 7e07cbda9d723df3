import io

import pytest

from tasks import email_sender

APPLICATION = {
    'firstName': 'Ama',
    'lastName': 'Mensah',
    'email': 'ama@example.com',
    'phone': '+233 20 000 0000',
    'position': 'Marine Surveyor',
    'department': 'Operations',
    'experience': '5 years',
    'coverLetter': 'I inspect vessels.',
}


def _form(**overrides):
    data = dict(APPLICATION)
    data['resume'] = (io.BytesIO(b'%PDF-1.4 resume'), 'cv.pdf', 'application/pdf')
    data.update(overrides)
    return data


def _create(client, auth_headers, **fields):
    payload = {'title': 'Marine Surveyor', 'department': 'Operations', 'location': 'Accra',
               'requirements': ['Degree', 'Sea time']}
    payload.update(fields)
    response = client.post('/api/careers', json=payload, headers=auth_headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


def test_create_and_list_postings(client, auth_headers):
    first = _create(client, auth_headers, order=2)
    second = _create(client, auth_headers, title='Lab Analyst', order=1)
    _create(client, auth_headers, title='Closed Role', isActive=False)

    listing = client.get('/api/careers').get_json()['data']
    assert [career['id'] for career in listing] == [second['id'], first['id']]
    assert first['requirements'] == ['Degree', 'Sea time']
    assert first['employmentType'] == 'Full-time'


def test_create_requires_title(client, auth_headers):
    response = client.post('/api/careers', json={'department': 'Ops'}, headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json()['message'] == 'title is required'


def test_non_string_title_is_coerced(client, auth_headers):
    posting = _create(client, auth_headers, title=123)
    assert posting['title'] == '123'

    blank = client.put(f"/api/careers/{posting['id']}", json={'title': None}, headers=auth_headers)
    assert blank.status_code == 400
    assert blank.get_json()['message'] == 'title is required'


def test_inactive_postings_visible_to_admin_only(client, auth_headers):
    closed = _create(client, auth_headers, title='Closed Role', isActive=False)

    assert client.get(f"/api/careers/{closed['id']}").status_code == 404
    assert client.get(f"/api/careers/{closed['id']}", headers=auth_headers).status_code == 200

    public = client.get('/api/careers?includeInactive=true').get_json()['data']
    assert public == []
    admin = client.get('/api/careers?includeInactive=true', headers=auth_headers).get_json()['data']
    assert [career['id'] for career in admin] == [closed['id']]


def test_update_and_delete_posting(client, auth_headers):
    career = _create(client, auth_headers)
    updated = client.put(f"/api/careers/{career['id']}", json={'location': 'Lagos', 'requirements': 'A, B'},
                         headers=auth_headers).get_json()['data']
    assert updated['location'] == 'Lagos'
    assert updated['requirements'] == ['A', 'B']

    assert client.delete(f"/api/careers/{career['id']}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/careers/{career['id']}").status_code == 404


def test_posting_translations(client, auth_headers, fake_translator):
    career = _create(client, auth_headers)
    assert career['translations']['ru']['requirements'] == ['[ru] Degree', '[ru] Sea time']

    localized = client.get(f"/api/careers/{career['id']}?lang=ru").get_json()['data']
    assert localized['title'] == '[ru] Marine Surveyor'


def test_apply_sends_admin_and_confirmation_emails(client, smtp_outbox):
    response = client.post('/api/careers/apply', data=_form(), content_type='multipart/form-data')
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['adminEmailSent'] is True
    assert data['confirmationEmailSent'] is True
    assert data['applicationId']

    admin_mail, confirmation = smtp_outbox
    assert admin_mail['Subject'] == 'New Job Application: Marine Surveyor'
    assert admin_mail['To'] == 'admin@example.com'
    assert admin_mail['Reply-To'] == 'ama@example.com'
    attachments = [part.get_filename() for part in admin_mail.walk() if part.get_filename()]
    assert attachments == ['cv.pdf']

    assert confirmation['Subject'] == 'Application Received - CBM Careers'
    assert confirmation['To'] == 'ama@example.com'


def test_apply_without_smtp_skips_email(client):
    response = client.post('/api/careers/apply', data=_form(), content_type='multipart/form-data')
    assert response.status_code == 200
    assert response.get_json()['data']['adminEmailSent'] is False


@pytest.mark.parametrize('overrides, message', [
    ({'phone': ''}, 'Missing required fields: phone'),
    ({'email': 'not-an-email'}, 'Invalid email format'),
    ({'resume': (io.BytesIO(b''), '', 'application/pdf')}, 'Resume/CV file is required'),
    ({'resume': (io.BytesIO(b'exe'), 'cv.exe', 'application/x-msdownload')},
     'Invalid file type. Please upload PDF, DOC, or DOCX files only.'),
    ({'resume': (io.BytesIO(b'x' * (5 * 1024 * 1024 + 1)), 'cv.pdf', 'application/pdf')},
     'File size must be less than 5MB'),
])
def test_apply_validation(client, overrides, message):
    response = client.post('/api/careers/apply', data=_form(**overrides), content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['message'] == message


def test_apply_fails_when_admin_email_is_rejected(client, smtp_outbox, monkeypatch):
    async def rejecting_send(msg, smtp_config):
        return {'success': False, 'response': '550 mailbox unavailable', 'error': 'rejected'}

    monkeypatch.setattr(email_sender, '_async_send_smtp', rejecting_send)
    response = client.post('/api/careers/apply', data=_form(), content_type='multipart/form-data')
    assert response.status_code == 500
    assert response.get_json()['success'] is False


def test_application_status_placeholder(client):
    assert client.get('/api/careers/status').status_code == 400
    response = client.get('/api/careers/status?email=ama@example.com&applicationId=abc')
    assert response.get_json()['data']['status'] == 'Under Review'
