"""
Tests for the health check endpoint and the admin endpoints.
"""

from unittest.mock import Mock, patch

from cityresolve.services.health import HealthCheckService

HEALTHY_MONGODB = {'status': 'healthy', 'ping': True, 'database': 'city_resolve_test'}


class TestHealthCheckEndpoint:
    """Test cases for the /api/healthz endpoint."""

    def test_all_healthy(self, app, client):
        with patch.object(app.mongodb_service, 'health_check', return_value=HEALTHY_MONGODB):
            response = client.get('/api/healthz')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'healthy'
        assert data['service'] == 'city-resolve-api'
        assert data['dependencies']['redis']['status'] == 'healthy'
        assert 'self' in data['_links']

    def test_redis_down_is_degraded(self, app, client):
        with patch.object(app.mongodb_service, 'health_check', return_value=HEALTHY_MONGODB), \
                patch.object(app.redis_service, 'health_check', return_value={'status': 'unhealthy'}):
            response = client.get('/api/healthz')

        assert response.status_code == 200
        assert response.get_json()['status'] == 'degraded'

    def test_mongodb_down_is_unhealthy(self, app, client):
        with patch.object(app.mongodb_service, 'health_check',
                          return_value={'status': 'unhealthy', 'error': 'timeout'}):
            response = client.get('/api/healthz')

        assert response.status_code == 503
        assert response.get_json()['status'] == 'unhealthy'


class TestHealthCheckService:

    def test_overall_status(self):
        mongodb = Mock()
        mongodb.health_check.return_value = HEALTHY_MONGODB
        redis = Mock()
        redis.health_check.return_value = {'status': 'unavailable'}

        health = HealthCheckService(mongodb, redis).get_health()

        assert health['status'] == 'degraded'
        assert set(health['dependencies']) == {'mongodb', 'redis'}


class TestAdminEndpoints:

    def test_stats_require_admin(self, client, citizen, auth_headers):
        assert client.get('/api/admin/stats', headers=auth_headers(citizen)).status_code == 403

    def test_stats(self, client, citizen, admin, auth_headers, report_issue):
        report_issue(citizen)

        response = client.get('/api/admin/stats', headers=auth_headers(admin))

        assert response.status_code == 200
        data = response.get_json()
        assert data['totalUsers'] == 2
        assert data['totalIssues'] == 1
        assert data['pendingIssues'] == 1
        assert data['revenue'] == 0.0

    def test_block_user(self, client, citizen, admin, auth_headers):
        response = client.patch(
            f'/api/admin/users/{citizen.email}/block', json={'blocked': True}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert response.get_json()['isBlocked'] is True

        response = client.post(
            '/api/issues', json={'title': 'Spam', 'category': 'Other'}, headers=auth_headers(citizen)
        )
        assert response.status_code == 403
        assert response.get_json()['reason'] == 'blocked'

    def test_admin_cannot_block_self(self, client, admin, auth_headers):
        response = client.patch(
            f'/api/admin/users/{admin.email}/block', json={'blocked': True}, headers=auth_headers(admin)
        )

        assert response.status_code == 403

    def test_promote_to_staff(self, client, citizen, admin, auth_headers):
        response = client.patch(
            f'/api/admin/users/{citizen.email}/role', json={'role': 'staff'}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert response.get_json()['role'] == 'staff'

    def test_moderate_unknown_user(self, client, admin, auth_headers):
        response = client.patch(
            '/api/admin/users/nobody@example.com/role', json={'role': 'staff'}, headers=auth_headers(admin)
        )

        assert response.status_code == 404
