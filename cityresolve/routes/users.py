# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Identity endpoints: registration and profile lookup.
"""

from flask import current_app, g, jsonify
from flask_openapi3 import APIBlueprint, Tag
import logging

from ..middleware.auth import require_auth
from ..middleware.error_handler import AuthorizationException, not_found_response
from ..models.requests import RegisterUserRequest, UserPath

logger = logging.getLogger(__name__)

users_tag = Tag(name="Users", description="Citizen, staff and admin identities")
users_bp = APIBlueprint(
    'users',
    __name__,
    url_prefix='/api/users',
    abp_tags=[users_tag]
)


@users_bp.post('')
@require_auth(require_registration=False)
def register_user(body: RegisterUserRequest):
    """
    Register the caller as a citizen.

    The email must match the token subject. Registering twice returns the
    existing identity with ``created`` false.
    """
    if body.email != g.token_claims["sub"].lower():
        raise AuthorizationException("You can only register your own email")

    identity, created = current_app.identity_service.register(body)
    response = current_app.hal_formatter.format_identity(identity, identity)
    response['created'] = created
    return jsonify(response), 201 if created else 200


@users_bp.get('/<email>')
@require_auth()
def get_user(path: UserPath):
    """Read an identity. Citizens may only read their own record."""
    viewer = g.identity
    if viewer.email != path.email.strip().lower() and not (viewer.is_admin() or viewer.is_staff()):
        raise AuthorizationException("You can only view your own profile")

    identity = current_app.identity_service.lookup(path.email)
    if identity is None:
        return not_found_response("User not found")
    return jsonify(current_app.hal_formatter.format_identity(identity, viewer))
