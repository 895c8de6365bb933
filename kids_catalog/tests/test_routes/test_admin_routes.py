"""
Integration tests for Kids Catalog admin API endpoints.

Tests:
- Role checks on the admin blueprint
- Content create, update, rename, language upsert and lifecycle
- Category management and content-count reconciliation
"""

from flask_jwt_extended import create_access_token
from sqlalchemy import update

from kids_catalog.models import Category, Content
from kids_catalog.services.favorite_service import FavoriteService
from kids_catalog.tests.conftest import TEST_USER_ID, get_auth_headers, variant_payload


def content_payload(title='The Brave Little Owl', **overrides):
    payload = {
        'type': 'story',
        'title': title,
        'duration_sec': 420,
        'age_range': '6-8',
        'tags': ['adventure', 'moral'],
        'languages': {'en': variant_payload(title, 'brave-owl')},
    }
    payload.update(overrides)
    return payload


# =============================================================================
# Authorization Tests
# =============================================================================

class TestAdminAuthorization:
    """Tests for the admin role requirement."""

    def test_missing_token_unauthorized(self, client):
        response = client.get('/api/v1/admin/content')

        assert response.status_code == 401

    def test_parent_token_forbidden(self, client, auth_headers):
        response = client.get('/api/v1/admin/content', headers=auth_headers)

        assert response.status_code == 403
        assert response.get_json()['error'] == ['FORBIDDEN']

    def test_content_manager_allowed(self, client, app):
        with app.app_context():
            token = create_access_token(identity='editor-1', additional_claims={'role': 'content_manager'})

        response = client.get('/api/v1/admin/content', headers=get_auth_headers(token))

        assert response.status_code == 200


# =============================================================================
# Content API Tests
# =============================================================================

class TestAdminContentAPI:
    """Tests for admin content endpoints."""

    def test_create_content(self, client, admin_headers, sample_category):
        response = client.post(
            '/api/v1/admin/content',
            json=content_payload(category_id=sample_category.id),
            headers=admin_headers
        )

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['slug'] == 'the-brave-little-owl'
        assert data['tags'] == ['adventure', 'moral']
        assert data['languages']['en']['audio_url'] == '/assets/audio/brave-owl.mp3'
        assert data['status'] == 'active'

        public = client.get('/api/v1/content/slug/the-brave-little-owl').get_json()['data']
        assert public['audio_url'] == 'https://cdn.test.local/assets/audio/brave-owl.mp3'

    def test_create_with_flat_fields(self, client, admin_headers):
        payload = {
            'type': 'music',
            'title': 'Rain Song',
            'duration_sec': 120,
            'age_range': '3-5',
            'audio_url': '/assets/audio/rain.mp3',
            'image_url': '/assets/images/rain.jpg',
            'published_at': '2024-01-15T08:00:00+00:00',
        }

        response = client.post('/api/v1/admin/content', json=payload, headers=admin_headers)

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['available_languages'] == ['en']
        assert data['published_at'].startswith('2024-01-15T08:00:00')

    def test_published_at_offset_stored_as_utc(self, client, admin_headers):
        response = client.post(
            '/api/v1/admin/content',
            json=content_payload(published_at='2024-01-15T13:30:00+05:30'),
            headers=admin_headers
        )

        assert response.status_code == 201
        assert response.get_json()['data']['published_at'].startswith('2024-01-15T08:00:00')

    def test_published_at_zulu_suffix_accepted(self, client, admin_headers, sample_content):
        response = client.put(
            f'/api/v1/admin/content/{sample_content.uuid}',
            json={'published_at': '2024-02-01T06:15:00Z'},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.get_json()['data']['published_at'].startswith('2024-02-01T06:15:00')

    def test_create_requires_fields(self, client, admin_headers):
        payload = content_payload()
        del payload['duration_sec']

        response = client.post('/api/v1/admin/content', json=payload, headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json()['error'] == ['VALIDATION_ERROR']

    def test_create_duplicate_slug_conflict(self, client, admin_headers, sample_content):
        response = client.post(
            '/api/v1/admin/content',
            json=content_payload('The Sleepy Forest!'),
            headers=admin_headers
        )

        assert response.status_code == 409
        assert response.get_json()['error'] == ['CONFLICT']

    def test_create_unknown_category(self, client, admin_headers):
        response = client.post(
            '/api/v1/admin/content',
            json=content_payload(category_id='missing-category'),
            headers=admin_headers
        )

        assert response.status_code == 404

    def test_bad_published_at(self, client, admin_headers):
        response = client.post(
            '/api/v1/admin/content',
            json=content_payload(published_at='last tuesday'),
            headers=admin_headers
        )

        assert response.status_code == 400

    def test_set_language_content(self, client, admin_headers, sample_content):
        response = client.put(
            f'/api/v1/admin/content/{sample_content.uuid}/languages/hi',
            json=variant_payload('नींद वाला जंगल', 'forest-hi'),
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.get_json()['data']['available_languages'] == ['en', 'hi']

        public = client.get(f'/api/v1/content/{sample_content.uuid}?lang=hi').get_json()['data']
        assert public['language'] == 'hi'
        assert public['title'] == 'नींद वाला जंगल'

    def test_set_language_validation(self, client, admin_headers, sample_content):
        unsupported = client.put(
            f'/api/v1/admin/content/{sample_content.uuid}/languages/fr',
            json=variant_payload('La forêt', 'forest-fr'),
            headers=admin_headers
        )
        incomplete = client.put(
            f'/api/v1/admin/content/{sample_content.uuid}/languages/hi',
            json={'title': 'नींद वाला जंगल'},
            headers=admin_headers
        )

        assert unsupported.status_code == 400
        assert incomplete.status_code == 400

    def test_update_content(self, client, db_session, admin_headers, sample_content, sample_category):
        response = client.put(
            f'/api/v1/admin/content/{sample_content.uuid}',
            json={'is_featured': True, 'tags': ['calming'], 'category_id': None},
            headers=admin_headers
        )

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['is_featured'] is True
        assert data['tags'] == ['calming']
        assert data['category_id'] is None

        db_session.expire_all()
        assert db_session.get(Category, sample_category.id).content_count == 0

    def test_rename(self, client, admin_headers, sample_content):
        response = client.post(
            f'/api/v1/admin/content/{sample_content.uuid}/rename',
            json={'title': 'The Sleepy Woods'},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.get_json()['data']['slug'] == 'the-sleepy-woods'
        assert client.get('/api/v1/content/slug/the-sleepy-forest').status_code == 404

    def test_archive_and_restore(self, client, db_session, admin_headers, sample_content, sample_category):
        url = f'/api/v1/admin/content/{sample_content.uuid}'

        archived = client.post(f'{url}/archive', headers=admin_headers)
        assert archived.get_json()['data']['status'] == 'archived'
        assert client.get(f'/api/v1/content/{sample_content.uuid}').status_code == 404
        db_session.expire_all()
        assert db_session.get(Category, sample_category.id).content_count == 0

        restored = client.post(f'{url}/restore', headers=admin_headers)
        assert restored.get_json()['data']['status'] == 'active'
        assert client.get(f'/api/v1/content/{sample_content.uuid}').status_code == 200
        db_session.expire_all()
        assert db_session.get(Category, sample_category.id).content_count == 1

    def test_delete_favorited_content_conflict(self, client, db_session, admin_headers, sample_kid, sample_content):
        FavoriteService.add_favorite(db_session, TEST_USER_ID, sample_kid.id, sample_content.id)
        db_session.commit()

        response = client.delete(f'/api/v1/admin/content/{sample_content.uuid}', headers=admin_headers)

        assert response.status_code == 409

    def test_delete_content(self, client, db_session, admin_headers, sample_content, sample_category):
        content_id = sample_content.id

        response = client.delete(f'/api/v1/admin/content/{sample_content.uuid}', headers=admin_headers)

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(Content, content_id) is None
        assert db_session.get(Category, sample_category.id).content_count == 0

    def test_content_stats(self, client, admin_headers, sample_content, sample_archived_content):
        response = client.get('/api/v1/admin/content/stats', headers=admin_headers)

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['total'] == 1
        assert data['by_type']['story'] == 1
        assert data['by_type']['music'] == 0
        assert data['by_age_range']['3-5'] == 1
        assert data['by_tag'] == {'calming': 1, 'folk_tales': 1}

    def test_content_stats_requires_admin(self, client, auth_headers):
        assert client.get('/api/v1/admin/content/stats', headers=auth_headers).status_code == 403

    def test_admin_listing_includes_archived(self, client, admin_headers, sample_content, sample_archived_content):
        data = client.get('/api/v1/admin/content', headers=admin_headers).get_json()['data']

        assert {item['status'] for item in data} == {'active', 'archived'}


# =============================================================================
# Category API Tests
# =============================================================================

class TestAdminCategoryAPI:
    """Tests for admin category endpoints."""

    def test_create_category(self, client, admin_headers):
        response = client.post(
            '/api/v1/admin/categories',
            json={'name': 'Calm Music', 'color': '#22c55e', 'image_url': '/assets/categories/calm.png'},
            headers=admin_headers
        )

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['slug'] == 'calm-music'
        assert data['metadata']['image_url'] == 'https://cdn.test.local/assets/categories/calm.png'

    def test_duplicate_category_conflict(self, client, admin_headers, sample_category):
        response = client.post(
            '/api/v1/admin/categories',
            json={'name': 'Bedtime Stories'},
            headers=admin_headers
        )

        assert response.status_code == 409

    def test_update_category(self, client, admin_headers, sample_category):
        response = client.put(
            f'/api/v1/admin/categories/{sample_category.id}',
            json={'sort_order': 3},
            headers=admin_headers
        )

        assert response.get_json()['data']['sort_order'] == 3

    def test_delete_category_with_content(self, client, admin_headers, sample_content, sample_category):
        response = client.delete(f'/api/v1/admin/categories/{sample_category.id}', headers=admin_headers)

        assert response.status_code == 409
        assert response.get_json()['error'] == ['CATEGORY_HAS_CONTENT']

    def test_delete_empty_category(self, client, db_session, admin_headers, sample_category):
        category_id = sample_category.id

        response = client.delete(f'/api/v1/admin/categories/{category_id}', headers=admin_headers)

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(Category, category_id) is None

    def test_archive_hides_category(self, client, admin_headers, sample_category):
        client.post(f'/api/v1/admin/categories/{sample_category.id}/archive', headers=admin_headers)

        public = client.get('/api/v1/categories').get_json()['data']
        admin = client.get('/api/v1/admin/categories', headers=admin_headers).get_json()['data']

        assert public == []
        assert [item['status'] for item in admin] == ['archived']

    def test_recompute_counts(self, client, db_session, admin_headers, sample_content, sample_category):
        db_session.execute(update(Category).values(content_count=9))
        db_session.commit()

        response = client.post('/api/v1/admin/categories/recompute', headers=admin_headers)

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['counts'] == {sample_category.id: 1}
        assert data['categories'] == 1
