# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Admin endpoints: dashboard statistics and identity moderation.
"""

from flask import current_app, g, jsonify, request
from flask_openapi3 import APIBlueprint, Tag
import logging

from ..middleware.auth import require_auth
from ..middleware.error_handler import AuthorizationException, not_found_response
from ..models.enums import UserRole
from ..models.requests import BlockUserRequest, ChangeRoleRequest, UserPath

logger = logging.getLogger(__name__)

admin_tag = Tag(name="Admin", description="Platform administration")
admin_bp = APIBlueprint(
    'admin',
    __name__,
    url_prefix='/api/admin',
    abp_tags=[admin_tag]
)


@admin_bp.get('/stats')
@require_auth(roles=[UserRole.ADMIN])
def get_stats():
    """Totals for users, issues and payments, revenue, and pending/resolved counts."""
    stats = current_app.statistics_service.admin_stats()
    return jsonify(current_app.hal_formatter.format_resource(stats, request.path))


@admin_bp.patch('/users/<email>/block')
@require_auth(roles=[UserRole.ADMIN])
def set_user_blocked(path: UserPath, body: BlockUserRequest):
    """Block or unblock an identity."""
    if path.email.strip().lower() == g.identity.email:
        raise AuthorizationException("Admins cannot block themselves")

    identity = current_app.identity_service.set_blocked(path.email, body.blocked)
    if identity is None:
        return not_found_response("User not found")

    logger.warning(
        "User block flag updated by admin",
        extra={"email": identity.email, "blocked": body.blocked, "admin": g.identity.email}
    )
    return jsonify(current_app.hal_formatter.format_identity(identity, g.identity))


@admin_bp.patch('/users/<email>/role')
@require_auth(roles=[UserRole.ADMIN])
def set_user_role(path: UserPath, body: ChangeRoleRequest):
    """Promote an identity to staff or admin, or demote it to citizen."""
    if path.email.strip().lower() == g.identity.email:
        raise AuthorizationException("Admins cannot change their own role")

    identity = current_app.identity_service.set_role(path.email, body.role)
    if identity is None:
        return not_found_response("User not found")

    logger.info(
        "User role updated by admin",
        extra={"email": identity.email, "role": identity.role, "admin": g.identity.email}
    )
    return jsonify(current_app.hal_formatter.format_identity(identity, g.identity))
