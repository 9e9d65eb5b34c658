from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import uuid4

from opentelemetry.instrumentation.redis import RedisInstrumentor
from redis.asyncio import Connection, ConnectionPool, Redis, SSLConnection
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import (
    BusyLoadingError,
    ConnectionError as RedisConnectionError,
    RedisError,
)

from memo.helpers.cache import lru_acache
from memo.helpers.config_models.store import RedisModel
from memo.helpers.logging import logger
from memo.models.readiness import ReadinessEnum
from memo.persistence.istore import IStore

# Instrument redis
RedisInstrumentor().instrument()


class RedisStore(IStore):
    """
    Store backed by a Redis server, shared by every process connected to it.

    Keys are namespaced with the configured prefix. Values never expire.
    """

    _config: RedisModel

    def __init__(self, config: RedisModel):
        self._config = config

    async def readiness(self) -> ReadinessEnum:
        """
        Check the readiness of the Redis store.

        This will validate the ACID properties of the database: Create, Read, Update, Delete.
        """
        test_name = self._namespaced(str(uuid4()))
        test_value = "test"
        try:
            async with self._use_client() as client:
                # Test the item does not exist
                assert await client.get(test_name) is None
                # Create a new item
                await client.set(test_name, test_value)
                # Test the item is the same
                assert (await client.get(test_name)).decode() == test_value
                # Delete the item
                await client.delete(test_name)
                # Test the item does not exist
                assert await client.get(test_name) is None
            return ReadinessEnum.OK
        except AssertionError:
            logger.exception("Readiness test failed")
        except RedisError:
            logger.exception("Error requesting Redis")
        return ReadinessEnum.FAIL

    async def get(self, key: str) -> bytes | None:
        """
        Get a value from the store.

        If the key does not exist or the server cannot be reached, return `None`.
        """
        res = None
        try:
            async with self._use_client() as client:
                res = await client.get(self._namespaced(key))
        except RedisError:
            logger.exception("Error getting value")
        return res

    async def set(
        self,
        key: str,
        value: str | bytes,
    ) -> bool:
        try:
            async with self._use_client() as client:
                await client.set(
                    name=self._namespaced(key),
                    value=value,
                )
        except RedisError:
            logger.exception("Error setting value")
            return False
        return True

    async def delete(self, key: str) -> bool:
        try:
            async with self._use_client() as client:
                await client.delete(self._namespaced(key))
        except RedisError:
            logger.exception("Error deleting value")
            return False
        return True

    @lru_acache()
    async def _use_connection_pool(self) -> ConnectionPool:
        """
        Generate the Redis connection pool.
        """
        logger.info("Using Redis store %s:%s", self._config.host, self._config.port)

        return ConnectionPool(
            # Database location
            db=self._config.database,
            # Reliability
            health_check_interval=10,  # Check the health of the connection every 10 secs
            retry_on_error=[BusyLoadingError, RedisConnectionError],
            retry_on_timeout=True,
            retry=Retry(backoff=ExponentialBackoff(), retries=3),
            socket_connect_timeout=5,
            socket_timeout=5,  # The collection is written on every mutation, allow slow disks on the server
            # Deployment
            connection_class=SSLConnection if self._config.ssl else Connection,
            host=self._config.host,
            port=self._config.port,
            # Authentication
            password=self._config.password.get_secret_value()
            if self._config.password
            else None,
        )

    @asynccontextmanager
    async def _use_client(self) -> AsyncGenerator[Redis]:
        """
        Return a Redis connection.
        """
        async with Redis(
            auto_close_connection_pool=False,
            connection_pool=await self._use_connection_pool(),
        ) as client:
            yield client

    def _namespaced(self, key: str) -> str:
        return f"{self._config.prefix}:{key}"
