"""
Health Check Service

Reports the health of the API's dependencies: MongoDB and Redis.
"""

import os
import time
from datetime import datetime
from typing import Any, Dict, List

from opentelemetry import trace

from .mongodb import MongoDBService
from .redis import RedisService

tracer = trace.get_tracer(__name__)


class HealthCheckService:
    """Aggregates dependency health into one status."""

    def __init__(self, mongodb_service: MongoDBService, redis_service: RedisService):
        self.mongodb_service = mongodb_service
        self.redis_service = redis_service
        self.service_version = os.getenv('SERVICE_VERSION', '1.0.0')

    def get_health(self) -> Dict[str, Any]:
        with tracer.start_as_current_span("health.check") as span:
            start_time = time.time()

            mongodb_health = self.mongodb_service.health_check()
            redis_health = self.redis_service.health_check()
            overall_status = self._determine_overall_status(
                mongodb_health["status"], [redis_health["status"]]
            )

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.mongodb_status": mongodb_health["status"],
                "health.redis_status": redis_health["status"]
            })

            return {
                "status": overall_status,
                "service": "city-resolve-api",
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": datetime.utcnow().isoformat() + "Z",
                "response_time_ms": round((time.time() - start_time) * 1000, 2),
                "dependencies": {
                    "mongodb": mongodb_health,
                    "redis": redis_health
                }
            }

    @staticmethod
    def _determine_overall_status(primary: str, optional: List[str]) -> str:
        """MongoDB is required; Redis only degrades token revocation."""
        if primary != "healthy":
            return "unhealthy"
        if any(status != "healthy" for status in optional):
            return "degraded"
        return "healthy"
