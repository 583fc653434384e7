# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Payment endpoint: records confirmed subscription and boost payments.
"""

from flask import current_app, g, jsonify
from flask_openapi3 import APIBlueprint, Tag
import logging

from ..middleware.auth import require_auth
from ..middleware.error_handler import denial_response
from ..models.requests import PaymentRequest

logger = logging.getLogger(__name__)

payments_tag = Tag(name="Payments", description="Premium subscriptions and issue boosts")
payments_bp = APIBlueprint(
    'payments',
    __name__,
    url_prefix='/api/payments',
    abp_tags=[payments_tag]
)


@payments_bp.post('')
@require_auth()
def record_payment(body: PaymentRequest):
    """
    Record a confirmed payment and apply it.

    A subscription makes the payer a verified (premium) citizen; a boost
    raises the referenced issue to high priority.
    """
    payment, result = current_app.payment_service.record_payment(g.identity, body)
    if payment is None:
        return denial_response(result.reason, result.message)

    response = current_app.hal_formatter.format_resource(payment.to_response(), f"/api/payments/{payment.id}")
    response['applied'] = result.success
    if result.success and result.issue is not None:
        response['_embedded'] = {'issue': current_app.hal_formatter.format_issue(result.issue, g.identity)}
    elif not result.success:
        response['reason'] = result.reason.value
    return jsonify(response), 201
