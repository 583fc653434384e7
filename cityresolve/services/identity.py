# SPDX-License-Identifier: Apache-2.0

"""
Identity gate: registration, lookup and moderation of citizens, staff and admins.
"""

import logging
from typing import Optional, Tuple

from opentelemetry import trace

from ..models.entities import Identity, normalize_email
from ..models.enums import UserRole
from ..models.requests import RegisterUserRequest
from .auth import AuthService, AuthenticationError
from .mongodb import MongoDBService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

USERS_COLLECTION = "users"


class IdentityService:
    """Reads and moderates identities stored in the ``users`` collection."""

    def __init__(self, mongodb_service: MongoDBService, auth_service: Optional[AuthService] = None):
        self.mongodb_service = mongodb_service
        self.auth_service = auth_service

    def lookup(self, email: str) -> Optional[Identity]:
        """Identity registered under ``email``, or None."""
        try:
            email = normalize_email(email)
        except ValueError:
            return None
        document = self.mongodb_service.find_one_by(USERS_COLLECTION, {"email": email})
        return Identity.from_document(document) if document else None

    def verify(self, token: str) -> Identity:
        """
        Resolve a bearer token to a registered identity.

        Raises:
            TokenValidationError: If the token is invalid or expired
            AuthenticationError: If the token subject is not registered
        """
        claims = self.auth_service.validate_token(token)
        identity = self.lookup(claims["sub"])
        if identity is None:
            raise AuthenticationError("Identity is not registered")
        return identity

    def register(self, request: RegisterUserRequest) -> Tuple[Identity, bool]:
        """
        Register a new citizen.

        Returns:
            Tuple of (identity, created). An existing email returns the stored
            identity unchanged with ``created`` False.
        """
        with tracer.start_as_current_span("identity.register", attributes={"user.email": request.email}):
            existing = self.lookup(request.email)
            if existing is not None:
                return existing, False

            identity = Identity(email=request.email, name=request.name, photo=request.photo)
            try:
                self.mongodb_service.create(USERS_COLLECTION, identity.to_document())
            except ValueError:
                # Registered concurrently; the unique index kept one record
                return self.lookup(request.email), False

            logger.info("Identity registered", extra={"email": identity.email})
            return identity, True

    def _update(self, email: str, updates: dict) -> Optional[Identity]:
        try:
            email = normalize_email(email)
        except ValueError:
            return None
        document = self.mongodb_service.update_by(USERS_COLLECTION, {"email": email}, updates)
        return Identity.from_document(document) if document else None

    def mark_verified(self, email: str) -> Optional[Identity]:
        """Grant premium status after a confirmed subscription."""
        identity = self._update(email, {"isVerified": True})
        if identity is not None:
            logger.info("Identity verified", extra={"email": identity.email})
        return identity

    def set_blocked(self, email: str, blocked: bool) -> Optional[Identity]:
        identity = self._update(email, {"isBlocked": blocked})
        if identity is not None:
            logger.warning(
                "Identity block flag changed",
                extra={"email": identity.email, "blocked": blocked}
            )
        return identity

    def set_role(self, email: str, role: UserRole) -> Optional[Identity]:
        identity = self._update(email, {"role": UserRole(role).value})
        if identity is not None:
            logger.info("Identity role changed", extra={"email": identity.email, "role": identity.role})
        return identity

    def count(self) -> int:
        return self.mongodb_service.estimated_count(USERS_COLLECTION)
