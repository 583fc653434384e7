# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and identity resolution.

The ``require_auth`` decorator resolves the bearer token to a registered
identity and stores it on ``flask.g`` before the view runs.
"""

from functools import wraps
from flask import current_app, request, g
from typing import Any, Callable, Dict, Iterable, Optional
from opentelemetry import trace
import logging

from ..models.entities import Identity
from ..models.enums import UserRole
from ..services.auth import AuthService, TokenValidationError
from ..services.identity import IdentityService
from ..services.redis import RedisService
from .error_handler import AuthenticationException, AuthorizationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    Handles token extraction, blocklist checking and identity lookup for
    protected endpoints.
    """

    def __init__(self, auth_service: AuthService, redis_service: RedisService,
                 identity_service: IdentityService):
        self.auth_service = auth_service
        self.redis_service = redis_service
        self.identity_service = identity_service

    def extract_token_from_request(self) -> Optional[str]:
        """Bearer token from the Authorization header, if any."""
        auth_header = request.headers.get('Authorization', '')
        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None
        return None

    def is_token_blocked(self, token: str) -> bool:
        try:
            token_id = self.auth_service.extract_token_id(token)
        except TokenValidationError:
            return True
        return self.redis_service.is_token_blocked(token_id)

    def authenticate(self, require_registration: bool = True) -> Dict[str, Any]:
        """
        Validate the request token and populate ``g``.

        Sets ``g.token``, ``g.token_claims`` and ``g.identity`` (None when
        registration is not required and the subject is unknown).

        Raises:
            AuthenticationException: Missing, revoked or invalid token, or
                unregistered subject when registration is required
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                raise AuthenticationException("Missing authorization token")

            if self.is_token_blocked(token):
                span.set_attribute("auth.result", "token_blocked")
                raise AuthenticationException("Token has been revoked")

            try:
                claims = self.auth_service.validate_token(token)
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                raise AuthenticationException(str(e))

            identity = self.identity_service.lookup(claims["sub"])
            if identity is None and require_registration:
                span.set_attribute("auth.result", "unregistered")
                raise AuthenticationException("Identity is not registered")

            g.token = token
            g.token_claims = claims
            g.identity = identity

            span.set_attributes({"auth.result": "success", "user.email": claims["sub"]})
            return claims


def require_auth(roles: Optional[Iterable[UserRole]] = None,
                 require_registration: bool = True) -> Callable:
    """
    Decorator requiring a valid bearer token.

    Args:
        roles: If given, the identity's role must be one of these
        require_registration: If False, tokens for unregistered emails pass
    """
    allowed = {UserRole(role).value for role in roles} if roles else None

    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            current_app.auth_middleware.authenticate(require_registration)

            identity: Optional[Identity] = g.identity
            if allowed is not None and (identity is None or identity.role not in allowed):
                logger.warning(
                    "Authorization failed: role not permitted",
                    extra={
                        "email": identity.email if identity else None,
                        "role": identity.role if identity else None,
                        "required_roles": sorted(allowed),
                        "path": request.path
                    }
                )
                raise AuthorizationException("Your role does not permit this action")

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def optional_auth(f: Callable) -> Callable:
    """Resolve the identity when a valid token is present; never fail."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.identity = None
        if current_app.auth_middleware.extract_token_from_request():
            try:
                current_app.auth_middleware.authenticate()
            except AuthenticationException as e:
                logger.debug(f"Ignoring invalid token on public endpoint: {e.message}")
                g.identity = None
        return f(*args, **kwargs)

    return decorated_function
