# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints.
"""

from flask import current_app, g, jsonify
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..middleware.auth import require_auth
from ..middleware.error_handler import ServiceUnavailableException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

auth_tag = Tag(name="Authentication", description="Token management")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    url_prefix='/api/auth',
    abp_tags=[auth_tag]
)


@auth_bp.post('/logout')
@require_auth(require_registration=False)
def logout():
    """Revoke the presented access token until it expires."""
    with tracer.start_as_current_span("auth.logout") as span:
        auth_service = current_app.auth_service
        token_id = auth_service.extract_token_id(g.token)
        ttl = auth_service.remaining_lifetime(g.token_claims)

        if not current_app.redis_service.block_token(token_id, ttl):
            span.set_attribute("auth.logout_result", "failed")
            raise ServiceUnavailableException("Token revocation is temporarily unavailable")

        span.set_attribute("auth.logout_result", "success")
        logger.info("User logged out", extra={"email": g.token_claims["sub"]})
        return jsonify({"message": "Logged out", "revoked": True})
