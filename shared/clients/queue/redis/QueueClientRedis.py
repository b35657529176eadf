import math

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from shared.clients.queue.QueueClientInterface import QueueClientInterface
from shared.errors import QueueConnectionError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

_CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


class QueueClientRedis(QueueClientInterface):
    """Redis list used as job queue: producers LPUSH, consumers BRPOP.

    Pushing to the head and popping from the tail keeps insertion order for
    the single list key. Any number of workers may block on the same key;
    Redis hands every element to exactly one of them.
    """

    def __init__(self, helper_config: HelperConfig, redis_client: Redis | None = None):
        super().__init__(helper_config=helper_config)
        self._url = self.get_config_val("URL", default=None, val_type="string")
        self._queue_name = self.get_config_val("KEY", default="message-indexing-queue", val_type="string")
        self._redis: Redis | None = redis_client

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Redis"

    def get_queue_name(self) -> str:
        return self._queue_name

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="URL", val_type="string", default=None),
            EnvConfig(env_key="KEY", val_type="string", default="message-indexing-queue"),
        ]

    def _get_redis(self) -> Redis:
        if self._redis is None:
            raise RuntimeError("Redis client not initialised. Call boot() before using the queue.")
        return self._redis

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        if self._redis is None:
            # no socket timeout: BRPOP blocks longer than a normal command
            self._redis = Redis.from_url(self._url, decode_responses=True)
        self.logging.debug("Booted queue client '%s' on key '%s'", self.get_engine_name(), self._queue_name)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> None:
        try:
            await self._get_redis().ping()
        except _CONNECTION_ERRORS as exc:
            raise QueueConnectionError(f"Redis queue is not reachable: {exc}", {"queue": self._queue_name}) from exc

    async def do_push(self, message: str) -> None:
        try:
            await self._get_redis().lpush(self._queue_name, message)
        except _CONNECTION_ERRORS as exc:
            raise QueueConnectionError(f"Could not push to Redis queue '{self._queue_name}': {exc}", {"queue": self._queue_name}) from exc

    async def do_pop(self, timeout: float) -> str | None:
        # BRPOP timeouts are whole seconds on older servers; 0 would block forever
        block_seconds = max(1, math.ceil(timeout))
        try:
            result = await self._get_redis().brpop([self._queue_name], timeout=block_seconds)
        except _CONNECTION_ERRORS as exc:
            raise QueueConnectionError(f"Could not pop from Redis queue '{self._queue_name}': {exc}", {"queue": self._queue_name}) from exc
        if result is None:
            return None
        _, message = result
        return message

    async def do_length(self) -> int:
        try:
            return int(await self._get_redis().llen(self._queue_name))
        except _CONNECTION_ERRORS as exc:
            raise QueueConnectionError(f"Could not read length of Redis queue '{self._queue_name}': {exc}", {"queue": self._queue_name}) from exc
