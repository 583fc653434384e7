# SPDX-License-Identifier: Apache-2.0

"""
Redis service for the JWT token blocklist.

Uses redis-py for a regular Redis server, or the Upstash HTTP client when a
REDIS_TOKEN is configured (serverless deployments).
"""

import os
import time
from typing import Any, Dict, Optional

import redis
from upstash_redis import Redis as UpstashRedis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

BLOCKLIST_PREFIX = "jwt:blocked:"


class RedisConnectionError(Exception):
    """Raised when Redis connection fails."""
    pass


class RedisService:
    """
    Token blocklist backed by Redis.

    When no client can be created the service reports itself unavailable;
    blocklist checks then allow tokens and revocation fails.
    """

    def __init__(self, redis_url: Optional[str] = None, redis_token: Optional[str] = None,
                 client: Any = None):
        """
        Initialize the Redis service.

        Args:
            redis_url: Redis URL (redis://host:port) or Upstash HTTP URL
            redis_token: Upstash authentication token
            client: Pre-built client, mainly for tests
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL")
        self.redis_token = redis_token or os.getenv("REDIS_TOKEN")
        self.client = client

        if self.client is not None:
            return

        if not self.redis_url:
            logger.warning("No REDIS_URL configured, token revocation will be disabled")
            return

        try:
            if self.redis_token:
                self.client = UpstashRedis(url=self.redis_url, token=self.redis_token)
            else:
                self.client = redis.from_url(self.redis_url, decode_responses=True)

            self._test_connection()
            logger.info("Redis service initialized", extra={"redis_url": self.redis_url})

        except RedisConnectionError:
            logger.error("Failed to initialize Redis service", exc_info=True)
            self.client = None

    def _test_connection(self) -> None:
        try:
            result = self.client.ping()
        except Exception as e:
            raise RedisConnectionError(f"Redis connection failed: {str(e)}")
        if result not in (True, "PONG"):
            raise RedisConnectionError("Redis ping failed")

    def is_available(self) -> bool:
        """Check if Redis service is available."""
        return self.client is not None

    def is_token_blocked(self, token_id: str) -> bool:
        """
        Check if a JWT token is in the blocklist.

        Args:
            token_id: Unique token identifier

        Returns:
            True if token is blocked, False otherwise
        """
        if not self.is_available():
            logger.warning("Redis unavailable for token blocklist check - allowing token")
            return False

        with tracer.start_as_current_span("redis.is_token_blocked") as span:
            span.set_attributes({
                "redis.operation": "is_token_blocked",
                "auth.token_id": token_id
            })

            try:
                blocked = bool(self.client.exists(f"{BLOCKLIST_PREFIX}{token_id}"))
            except Exception as e:
                logger.error(f"Redis EXISTS failed: {str(e)}")
                blocked = False

            span.set_attribute("auth.token_blocked", blocked)
            return blocked

    def block_token(self, token_id: str, ttl_seconds: int) -> bool:
        """
        Add a JWT token to the blocklist.

        Args:
            token_id: Unique token identifier
            ttl_seconds: Time to live (should match token expiration)

        Returns:
            True if token was blocked, False otherwise
        """
        if not self.is_available():
            logger.error("Redis unavailable - cannot block token")
            return False

        with tracer.start_as_current_span("redis.block_token") as span:
            span.set_attributes({
                "redis.operation": "block_token",
                "auth.token_id": token_id,
                "redis.ttl": ttl_seconds
            })

            try:
                self.client.setex(f"{BLOCKLIST_PREFIX}{token_id}", max(ttl_seconds, 1), "1")
            except Exception as e:
                span.set_attribute("auth.token_block_result", "failed")
                logger.error(f"Failed to block token: {str(e)}")
                return False

            span.set_attribute("auth.token_block_result", "success")
            logger.info("Token blocked", extra={"token_id": token_id, "ttl_seconds": ttl_seconds})
            return True

    def health_check(self) -> Dict[str, Any]:
        """
        Perform Redis health check.

        Returns:
            Health check results
        """
        if not self.is_available():
            return {
                "status": "unavailable",
                "message": "Redis client not initialized",
                "timestamp": time.time()
            }

        start_time = time.time()
        try:
            self._test_connection()
        except RedisConnectionError as e:
            return {
                "status": "unhealthy",
                "message": str(e),
                "timestamp": time.time()
            }

        return {
            "status": "healthy",
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
            "timestamp": time.time()
        }
