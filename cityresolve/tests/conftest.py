# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
import mongomock

from cityresolve.app import create_app
from cityresolve.models.entities import Identity
from cityresolve.models.enums import UserRole
from cityresolve.models.requests import CreateIssueRequest
from cityresolve.services.auth import AuthService, generate_key_pair
from cityresolve.services.identity import IdentityService, USERS_COLLECTION
from cityresolve.services.issues import IssueService
from cityresolve.services.mongodb import MongoDBService
from cityresolve.services.payments import PaymentService
from cityresolve.services.redis import RedisService
from cityresolve.services.timeline import TimelineLedger

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'


class InMemoryRedisClient:
    """Minimal stand-in for the redis client calls the blocklist makes."""

    def __init__(self):
        self.values = {}

    def ping(self):
        return True

    def exists(self, key):
        return 1 if key in self.values else 0

    def setex(self, key, ttl, value):
        self.values[key] = value
        return True


@pytest.fixture(scope="session")
def key_pair():
    """One RSA key pair shared by the whole test session."""
    return generate_key_pair()


@pytest.fixture(scope="session")
def auth_service(key_pair):
    private_key, public_key = key_pair
    return AuthService(private_key, public_key)


@pytest.fixture
def mongodb_service():
    """MongoDB service backed by an in-process mongomock client."""
    service = MongoDBService(database_name="city_resolve_test", client=mongomock.MongoClient())
    yield service
    service.close_connection()


@pytest.fixture
def redis_service():
    return RedisService(client=InMemoryRedisClient())


@pytest.fixture
def timeline_ledger(mongodb_service):
    return TimelineLedger(mongodb_service)


@pytest.fixture
def issue_service(mongodb_service, timeline_ledger):
    return IssueService(mongodb_service, timeline_ledger, free_issue_limit=3)


@pytest.fixture
def identity_service(mongodb_service, auth_service):
    return IdentityService(mongodb_service, auth_service)


@pytest.fixture
def payment_service(mongodb_service, identity_service, issue_service):
    return PaymentService(mongodb_service, identity_service, issue_service)


@pytest.fixture
def make_identity(mongodb_service):
    """Factory that stores an identity and returns it."""
    def _make(email, name=None, role=UserRole.CITIZEN, verified=False, blocked=False):
        identity = Identity(
            email=email,
            name=name or email.split("@")[0].title(),
            role=role,
            is_verified=verified,
            is_blocked=blocked
        )
        mongodb_service.create(USERS_COLLECTION, identity.to_document())
        return identity
    return _make


@pytest.fixture
def citizen(make_identity):
    return make_identity("alice@example.com", "Alice")


@pytest.fixture
def other_citizen(make_identity):
    return make_identity("carol@example.com", "Carol")


@pytest.fixture
def staff(make_identity):
    return make_identity("bob@city.gov", "Bob", role=UserRole.STAFF)


@pytest.fixture
def admin(make_identity):
    return make_identity("ada@city.gov", "Ada", role=UserRole.ADMIN)


@pytest.fixture
def report_issue(issue_service):
    """Factory that reports an issue and returns it."""
    def _report(reporter, title="Broken streetlight", category="Lighting"):
        result = issue_service.create_issue(
            reporter, CreateIssueRequest(title=title, category=category, location="Main St")
        )
        assert result.success, result.message
        return result.issue
    return _report


@pytest.fixture
def app(mongodb_service, redis_service, auth_service):
    app = create_app(
        config={"TESTING": True, "OTEL_ENABLED": False, "BASE_URL": "http://testserver"},
        mongodb_service=mongodb_service,
        redis_service=redis_service,
        auth_service=auth_service
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(auth_service):
    """Build Authorization headers for an identity."""
    def _headers(identity):
        token = auth_service.generate_tokens(identity)["access_token"]
        return {"Authorization": f"Bearer {token}"}
    return _headers
