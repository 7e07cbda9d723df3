import io

import pytest

from core.database_models import Blog
from core.extensions import db


def _create(client, auth_headers, **fields):
    payload = {'title': 'Cargo Tracking Notes', 'featuredImage': 'https://cdn.example.com/a.png'}
    payload.update(fields)
    response = client.post('/api/blogs', json=payload, headers=auth_headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


@pytest.fixture
def blogs(client, auth_headers):
    return [
        _create(client, auth_headers, title='Port Logistics', tags=['Shipping', 'Ports'],
                excerpt='Ports at scale', content='<p>Vessels and berths</p>', isFeatured=True),
        _create(client, auth_headers, title='Customs Compliance', tags=['Compliance'],
                content='<p>Declarations</p>'),
        _create(client, auth_headers, title='Draft Post', tags=['Shipping'], isPublished=False),
    ]


def test_create_derives_slug_and_publish_date(client, auth_headers):
    blog = _create(client, auth_headers, title='Hello,  World! 2024')
    assert blog['slug'] == 'hello-world-2024'
    assert blog['publishedAt'] is not None
    assert blog['isPublished'] is True
    assert blog['viewCount'] == 0


def test_duplicate_titles_get_unique_slugs(client, auth_headers):
    first = _create(client, auth_headers, title='Same Title')
    second = _create(client, auth_headers, title='Same Title')
    third = _create(client, auth_headers, title='Same Title')
    assert [first['slug'], second['slug'], third['slug']] == ['same-title', 'same-title-2', 'same-title-3']


def test_unpublished_blog_has_no_publish_date(client, auth_headers):
    blog = _create(client, auth_headers, isPublished=False)
    assert blog['publishedAt'] is None


def test_create_requires_featured_image_and_title(client, auth_headers):
    missing_image = client.post('/api/blogs', json={'title': 'No image'}, headers=auth_headers)
    assert missing_image.status_code == 400
    assert missing_image.get_json()['message'] == 'Featured image is required'

    missing_title = client.post('/api/blogs', json={'featuredImage': 'x.png', 'title': '  '}, headers=auth_headers)
    assert missing_title.status_code == 400
    assert missing_title.get_json()['message'] == 'Title is required'


def test_create_requires_admin(client):
    response = client.post('/api/blogs', json={'title': 'x', 'featuredImage': 'x.png'})
    assert response.status_code == 401


def test_content_is_sanitized(client, auth_headers):
    blog = _create(client, auth_headers, content='<p onclick="steal()">Hi</p><script>alert(1)</script>')
    assert 'script' not in blog['content']
    assert 'onclick' not in blog['content']
    assert '<p>Hi</p>' in blog['content']


def test_multipart_create_with_uploaded_image(app, client, auth_headers):
    data = {
        'title': 'Form Post',
        'tags': '["a", "b"]',
        'isFeatured': 'true',
        'featuredImageFile': (io.BytesIO(b'\x89PNG fake'), 'cover.png', 'image/png'),
    }
    response = client.post('/api/blogs', data=data, headers=auth_headers, content_type='multipart/form-data')
    assert response.status_code == 201
    blog = response.get_json()['data']
    assert blog['tags'] == ['a', 'b']
    assert blog['isFeatured'] is True
    assert blog['featuredImage'].startswith('/uploads/blog_featured-images/')

    served = client.get(blog['featuredImage'])
    assert served.status_code == 200
    assert served.data == b'\x89PNG fake'


def test_list_hides_unpublished_and_content(client, blogs):
    response = client.get('/api/blogs')
    data = response.get_json()['data']
    titles = {blog['title'] for blog in data['blogs']}
    assert titles == {'Port Logistics', 'Customs Compliance'}
    assert all('content' not in blog for blog in data['blogs'])
    assert data['pagination'] == {
        'currentPage': 1, 'totalPages': 1, 'totalItems': 2, 'hasNext': False, 'hasPrev': False,
    }


def test_include_unpublished_needs_admin(client, auth_headers, blogs):
    public = client.get('/api/blogs?includeUnpublished=true')
    assert public.get_json()['data']['pagination']['totalItems'] == 2

    admin = client.get('/api/blogs?includeUnpublished=true', headers=auth_headers)
    data = admin.get_json()['data']
    assert data['pagination']['totalItems'] == 3
    assert all('content' in blog for blog in data['blogs'])


def test_list_pagination_and_filters(client, blogs):
    page = client.get('/api/blogs?limit=1&page=2').get_json()['data']
    assert len(page['blogs']) == 1
    assert page['pagination']['totalPages'] == 2
    assert page['pagination']['hasPrev'] is True

    tagged = client.get('/api/blogs?tag=ship').get_json()['data']['blogs']
    assert [blog['title'] for blog in tagged] == ['Port Logistics']

    featured = client.get('/api/blogs?featured=true').get_json()['data']['blogs']
    assert [blog['title'] for blog in featured] == ['Port Logistics']


def test_list_rejects_unknown_sort(client):
    response = client.get('/api/blogs?sortBy=password')
    assert response.status_code == 400


def test_featured_tags_search_and_tag_routes(client, blogs):
    featured = client.get('/api/blogs/featured').get_json()['data']
    assert [blog['title'] for blog in featured] == ['Port Logistics']

    tags = client.get('/api/blogs/tags').get_json()['data']
    assert tags == ['Compliance', 'Ports', 'Shipping']

    search = client.get('/api/blogs/search?q=declarations').get_json()['data']
    assert [blog['title'] for blog in search['blogs']] == ['Customs Compliance']
    assert search['query'] == 'declarations'

    assert client.get('/api/blogs/search').status_code == 400

    by_tag = client.get('/api/blogs/tag/Shipping').get_json()['data']
    assert [blog['title'] for blog in by_tag['blogs']] == ['Port Logistics']
    assert by_tag['tag'] == 'Shipping'


def test_get_by_slug_or_id_counts_views(client, blogs):
    blog = blogs[0]
    first = client.get(f"/api/blogs/{blog['slug']}").get_json()['data']
    second = client.get(f"/api/blogs/{blog['id']}").get_json()['data']
    assert first['viewCount'] == 1
    assert second['viewCount'] == 2
    assert second['content'] == '<p>Vessels and berths</p>'


def test_unpublished_blog_is_not_readable(client, blogs):
    assert client.get(f"/api/blogs/{blogs[2]['slug']}").status_code == 404
    assert client.get('/api/blogs/missing').status_code == 404


def test_update_and_slug_conflicts(client, auth_headers, blogs):
    response = client.put(f"/api/blogs/{blogs[1]['id']}", json={'title': 'Customs 2.0', 'isFeatured': True},
                          headers=auth_headers)
    assert response.status_code == 200
    updated = response.get_json()['data']
    assert updated['title'] == 'Customs 2.0'
    assert updated['slug'] == blogs[1]['slug']
    assert updated['isFeatured'] is True

    conflict = client.put(f"/api/blogs/{blogs[1]['id']}", json={'slug': blogs[0]['slug']}, headers=auth_headers)
    assert conflict.status_code == 400

    empty_title = client.put(f"/api/blogs/{blogs[1]['id']}", json={'title': ''}, headers=auth_headers)
    assert empty_title.status_code == 400


def test_publishing_a_draft_stamps_publish_date(client, auth_headers, blogs):
    draft = blogs[2]
    response = client.put(f"/api/blogs/{draft['id']}", json={'isPublished': True}, headers=auth_headers)
    assert response.get_json()['data']['publishedAt'] is not None


def test_delete(app, client, auth_headers, blogs):
    response = client.delete(f"/api/blogs/{blogs[0]['id']}", headers=auth_headers)
    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(Blog, blogs[0]['id']) is None
    assert client.delete(f"/api/blogs/{blogs[0]['id']}", headers=auth_headers).status_code == 404


def test_create_stores_translations_when_enabled(client, auth_headers, fake_translator):
    blog = _create(client, auth_headers, title='Vessels', tags=['Ports'], content='<p>Body</p>')
    assert set(blog['translations']) == {'fr', 'pt', 'es', 'ru', 'zh'}
    assert blog['translations']['fr']['title'] == '[fr] Vessels'
    assert blog['translations']['fr']['tags'] == ['[fr] Ports']

    html_calls = [call for call in fake_translator.calls if call['q'] == '<p>Body</p>']
    assert html_calls and all(call['format'] == 'html' for call in html_calls)

    localized = client.get(f"/api/blogs/{blog['slug']}?lang=fr").get_json()['data']
    assert localized['title'] == '[fr] Vessels'
    assert localized['content'] == '[fr] <p>Body</p>'


def test_update_merges_changed_fields_only(client, auth_headers, fake_translator):
    blog = _create(client, auth_headers, title='Vessels', excerpt='Short')
    updated = client.put(f"/api/blogs/{blog['id']}", json={'title': 'Ships'}, headers=auth_headers)
    entry = updated.get_json()['data']['translations']['es']
    assert entry['title'] == '[es] Ships'
    assert entry['excerpt'] == '[es] Short'
