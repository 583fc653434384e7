# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - persistence, external integrations and the issue engine.
"""

from .mongodb import MongoDBService, PaginationResult, PersistenceError, get_mongodb_service, close_mongodb_connection
from .timeline import TimelineLedger
from .issues import IssueService
from .identity import IdentityService
from .payments import PaymentService
from .amqp import AMQPService, AMQPConfig, PublishResult, create_amqp_service

__all__ = [
    "MongoDBService",
    "PaginationResult",
    "PersistenceError",
    "get_mongodb_service",
    "close_mongodb_connection",
    "TimelineLedger",
    "IssueService",
    "IdentityService",
    "PaymentService",
    "AMQPService",
    "AMQPConfig",
    "PublishResult",
    "create_amqp_service"
]
