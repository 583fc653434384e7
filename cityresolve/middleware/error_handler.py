# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, current_app, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, Tuple
from opentelemetry import trace
import logging

from ..models.enums import DenialReason
from ..services.auth import AuthenticationError, TokenValidationError
from ..services.hal import HalFormatter
from ..services.mongodb import PersistenceError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

_HTTP_ERROR_TYPES = {
    400: ("bad-request", "Bad Request"),
    401: ("authentication-required", "Authentication Required"),
    403: ("insufficient-permissions", "Insufficient Permissions"),
    404: ("resource-not-found", "Resource Not Found"),
    405: ("method-not-allowed", "Method Not Allowed"),
    409: ("resource-conflict", "Resource Conflict"),
    422: ("validation-error", "Validation Error"),
}


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """Exception for authorization errors."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ServiceUnavailableException(CustomException):
    """Exception for service unavailable errors."""

    def __init__(self, message: str):
        super().__init__(message, 503, "service-unavailable")


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            if error.code is not None and error.code >= 500:
                return self.handle_server_error(error.description or error.name, error.code)
            return self.handle_client_error(error)

        @self.app.errorhandler(CustomException)
        def handle_custom_exception(error: CustomException):
            return self.handle_custom_exception(error)

        @self.app.errorhandler(TokenValidationError)
        def handle_token_error(error: TokenValidationError):
            return self.handle_custom_exception(AuthenticationException(str(error)))

        @self.app.errorhandler(AuthenticationError)
        def handle_authentication_error(error: AuthenticationError):
            return self.handle_custom_exception(AuthenticationException(str(error)))

        @self.app.errorhandler(PersistenceError)
        def handle_persistence_error(error: PersistenceError):
            logger.error(
                "Persistence failure",
                extra={"path": request.path, "method": request.method, "error": str(error)},
                exc_info=True
            )
            response = self.hal_formatter.format_service_unavailable(
                "The data store is temporarily unavailable, please retry", request.path
            )
            return jsonify(response), 503

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error: Exception):
            return self.handle_unexpected_error(error)

    def handle_client_error(self, error: HTTPException) -> Tuple[Any, int]:
        """Handle client errors (4xx status codes)."""
        error_type, title = _HTTP_ERROR_TYPES.get(error.code, ("client-error", error.name))
        detail = str(error.description) if error.description else title

        logger.warning(
            f"Client error: {title}",
            extra={
                "error_type": error_type,
                "status_code": error.code,
                "path": request.path,
                "method": request.method
            }
        )

        response = self.hal_formatter.build_error_response(
            error_type, title, error.code, detail, request.path
        )
        return jsonify(response), error.code

    def handle_custom_exception(self, error: CustomException) -> Tuple[Any, int]:
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.path": request.path
            })

            logger.warning(
                f"Request failed: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "detail": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            if isinstance(error, AuthenticationException):
                response = self.hal_formatter.format_authentication_error(error.message, request.path)
            elif isinstance(error, AuthorizationException):
                response = self.hal_formatter.format_authorization_error(error.message, request.path)
            elif isinstance(error, NotFoundException):
                response = self.hal_formatter.format_not_found_error(error.message, request.path)
            elif isinstance(error, ServiceUnavailableException):
                response = self.hal_formatter.format_service_unavailable(error.message, request.path)
            else:
                response = self.hal_formatter.build_error_response(
                    error.error_type, "Application Error", error.status_code, error.message, request.path
                )

            return jsonify(response), error.status_code

    def handle_server_error(self, detail: str, status: int = 500) -> Tuple[Any, int]:
        logger.error(
            "Server error",
            extra={"status_code": status, "path": request.path, "method": request.method}
        )
        if self.app.config.get('ENVIRONMENT') == 'production':
            detail = "An internal server error occurred"
        response = self.hal_formatter.format_server_error(detail, request.path)
        response['status'] = status
        return jsonify(response), status

    def handle_unexpected_error(self, error: Exception) -> Tuple[Any, int]:
        """Handle unexpected exceptions not caught by specific handlers."""
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_class": error.__class__.__name__,
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            return jsonify(self.hal_formatter.format_server_error(detail, request.path)), 500


def denial_response(reason: DenialReason, message: str) -> Tuple[Any, int]:
    """Render a policy denial as a problem document carrying ``reason``."""
    body, status = current_app.hal_formatter.format_denial(reason, message, request.path)

    logger.info(
        "Request denied by policy",
        extra={"reason": DenialReason(reason).value, "status_code": status, "path": request.path}
    )
    return jsonify(body), status


def not_found_response(message: str) -> Tuple[Dict[str, Any], int]:
    return denial_response(DenialReason.NOT_FOUND, message)
