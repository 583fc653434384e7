# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HTTP tests for issue, identity and payment endpoints.
"""

from cityresolve.models.entities import Identity
from cityresolve.models.enums import UserRole


class TestIssueEndpoints:

    def test_create_issue(self, client, citizen, auth_headers):
        response = client.post(
            '/api/issues',
            json={'title': 'Broken streetlight', 'category': 'Lighting', 'location': 'Main St'},
            headers=auth_headers(citizen)
        )

        assert response.status_code == 201
        data = response.get_json()
        assert data['status'] == 'pending'
        assert data['priority'] == 'normal'
        assert data['reportedBy']['email'] == citizen.email
        assert data['_embedded']['timelineEntry']['status'] == 'pending'
        assert 'edit' in data['_links']
        assert 'boost' in data['_links']

    def test_fourth_free_issue_denied(self, client, citizen, auth_headers, report_issue):
        for index in range(3):
            report_issue(citizen, title=f"Issue {index}")

        response = client.post(
            '/api/issues', json={'title': 'Fourth', 'category': 'Roads'}, headers=auth_headers(citizen)
        )

        assert response.status_code == 403
        assert response.get_json()['reason'] == 'free-limit-reached'

    def test_list_is_public(self, client, citizen, report_issue):
        report_issue(citizen, title="Pothole on Elm")
        report_issue(citizen, title="Graffiti")

        response = client.get('/api/issues?search=pothole')

        assert response.status_code == 200
        data = response.get_json()
        assert data['total'] == 1
        assert data['_embedded']['issues'][0]['title'] == "Pothole on Elm"
        assert set(data['_embedded']['issues'][0]['_links']) == {'self', 'collection', 'timeline'}

    def test_list_rejects_bad_pagination(self, client):
        assert client.get('/api/issues?limit=0').status_code == 422
        assert client.get('/api/issues?status=archived').status_code == 422

    def test_get_issue_and_missing(self, client, citizen, report_issue):
        issue = report_issue(citizen)

        assert client.get(f'/api/issues/{issue.id}').status_code == 200

        response = client.get('/api/issues/000000000000000000000000')
        assert response.status_code == 404
        assert response.get_json()['reason'] == 'not-found'

        assert client.get('/api/issues/not-an-id/timeline').status_code == 404

    def test_upvote_flow(self, client, citizen, other_citizen, auth_headers, report_issue):
        issue = report_issue(citizen)

        response = client.patch(f'/api/issues/{issue.id}/upvote', headers=auth_headers(other_citizen))
        assert response.status_code == 200
        assert response.get_json()['upvotes'] == 1
        assert 'upvote' not in response.get_json()['_links']

        response = client.patch(f'/api/issues/{issue.id}/upvote', headers=auth_headers(other_citizen))
        assert response.status_code == 409
        assert response.get_json()['reason'] == 'already-upvoted'

        response = client.patch(f'/api/issues/{issue.id}/upvote', headers=auth_headers(citizen))
        assert response.status_code == 409
        assert response.get_json()['reason'] == 'own-issue'

    def test_blocked_identity_cannot_upvote(self, client, citizen, make_identity, auth_headers, report_issue):
        issue = report_issue(citizen)
        blocked = make_identity("troll@example.com", blocked=True)

        response = client.patch(f'/api/issues/{issue.id}/upvote', headers=auth_headers(blocked))

        assert response.status_code == 403
        assert response.get_json()['reason'] == 'blocked'

    def test_edit_issue(self, client, citizen, other_citizen, auth_headers, report_issue):
        issue = report_issue(citizen)

        response = client.patch(
            f'/api/issues/{issue.id}', json={'title': 'Two lights out'}, headers=auth_headers(citizen)
        )
        assert response.status_code == 200
        assert response.get_json()['title'] == 'Two lights out'

        response = client.patch(
            f'/api/issues/{issue.id}', json={'title': 'Mine now'}, headers=auth_headers(other_citizen)
        )
        assert response.status_code == 403
        assert response.get_json()['reason'] == 'forbidden'

    def test_moderation_flow(self, client, citizen, staff, admin, auth_headers, report_issue):
        issue = report_issue(citizen)

        response = client.patch(
            f'/api/issues/{issue.id}/assign', json={'staffEmail': staff.email}, headers=auth_headers(admin)
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'in-progress'
        assert data['assignedStaff']['email'] == staff.email
        assert data['_embedded']['timelineEntry']['message'] == "Issue assigned to Bob"

        response = client.get('/api/staff/issues', headers=auth_headers(staff))
        assert [item['id'] for item in response.get_json()['_embedded']['issues']] == [issue.id]

        response = client.patch(
            f'/api/issues/{issue.id}/status', json={'status': 'resolved'}, headers=auth_headers(staff)
        )
        assert response.status_code == 200
        assert response.get_json()['status'] == 'resolved'

        response = client.patch(
            f'/api/issues/{issue.id}/reject', json={'reason': 'late'}, headers=auth_headers(admin)
        )
        assert response.status_code == 409
        assert response.get_json()['reason'] == 'terminal-state'

        response = client.get(f'/api/issues/{issue.id}/timeline')
        statuses = [entry['status'] for entry in response.get_json()['_embedded']['entries']]
        assert statuses == ['resolved', 'in-progress', 'pending']

    def test_assign_unknown_staff(self, client, citizen, admin, auth_headers, report_issue):
        issue = report_issue(citizen)

        response = client.patch(
            f'/api/issues/{issue.id}/assign', json={'staffEmail': 'nobody@city.gov'}, headers=auth_headers(admin)
        )

        assert response.status_code == 403
        assert response.get_json()['reason'] == 'not-staff'

    def test_staff_can_assign(self, client, citizen, staff, make_identity, auth_headers, report_issue):
        dispatcher = make_identity("dan@city.gov", "Dan", role=UserRole.STAFF)
        issue = report_issue(citizen)

        response = client.patch(
            f'/api/issues/{issue.id}/assign', json={'staffEmail': staff.email}, headers=auth_headers(dispatcher)
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data['assignedStaff']['email'] == staff.email
        assert data['_embedded']['timelineEntry']['role'] == 'admin'

    def test_assign_requires_staff_role(self, client, citizen, other_citizen, staff, auth_headers, report_issue):
        issue = report_issue(citizen)

        response = client.patch(
            f'/api/issues/{issue.id}/assign', json={'staffEmail': staff.email}, headers=auth_headers(other_citizen)
        )

        assert response.status_code == 403

    def test_my_issues(self, client, citizen, other_citizen, auth_headers, report_issue):
        report_issue(citizen, title="Mine")
        report_issue(other_citizen, title="Theirs")

        response = client.get('/api/my-issues', headers=auth_headers(citizen))

        assert [item['title'] for item in response.get_json()['_embedded']['issues']] == ["Mine"]


class TestUserEndpoints:

    def test_register_self(self, client, auth_headers):
        newcomer = Identity(email="eve@example.com", name="Eve")

        response = client.post('/api/users', json={'name': 'Eve', 'email': 'eve@example.com'},
                               headers=auth_headers(newcomer))
        assert response.status_code == 201
        assert response.get_json()['created'] is True

        response = client.post('/api/users', json={'name': 'Eve', 'email': 'eve@example.com'},
                               headers=auth_headers(newcomer))
        assert response.status_code == 200
        assert response.get_json()['created'] is False

    def test_register_other_email_forbidden(self, client, auth_headers):
        newcomer = Identity(email="eve@example.com", name="Eve")

        response = client.post('/api/users', json={'name': 'Mallory', 'email': 'mallory@example.com'},
                               headers=auth_headers(newcomer))

        assert response.status_code == 403

    def test_profile_visibility(self, client, citizen, other_citizen, admin, auth_headers):
        assert client.get(f'/api/users/{citizen.email}', headers=auth_headers(citizen)).status_code == 200
        assert client.get(f'/api/users/{citizen.email}', headers=auth_headers(other_citizen)).status_code == 403

        response = client.get(f'/api/users/{citizen.email}', headers=auth_headers(admin))
        assert response.status_code == 200
        assert 'block' in response.get_json()['_links']


class TestPaymentEndpoints:

    def test_subscription_payment(self, client, citizen, auth_headers):
        response = client.post('/api/payments', json={'type': 'subscription', 'price': '9.99'},
                               headers=auth_headers(citizen))

        assert response.status_code == 201
        assert response.get_json()['applied'] is True

        profile = client.get(f'/api/users/{citizen.email}', headers=auth_headers(citizen)).get_json()
        assert profile['isVerified'] is True

    def test_boost_payment(self, client, citizen, admin, auth_headers, report_issue):
        issue = report_issue(citizen)

        response = client.post('/api/payments', json={'type': 'boost', 'price': '2.00', 'issueId': issue.id},
                               headers=auth_headers(citizen))

        assert response.status_code == 201
        assert response.get_json()['_embedded']['issue']['priority'] == 'high'

        response = client.post('/api/payments', json={'type': 'boost', 'price': '2.00', 'issueId': issue.id},
                               headers=auth_headers(citizen))
        assert response.status_code == 201
        data = response.get_json()
        assert data['applied'] is False
        assert data['reason'] == 'already-boosted'

        stats = client.get('/api/admin/stats', headers=auth_headers(admin)).get_json()
        assert stats['totalPayments'] == 2
        assert stats['revenue'] == 4.0
