import json
import logging
from typing import Any, Callable, Self

import redis
from redis import exceptions as redis_exc

from sqsbridge import exceptions
from sqsbridge.tasks import message

from . import base

logger = logging.getLogger(__name__)

RedisClientFactory = Callable[[message.ConnectionDetails], Any]


def create_redis_client(details: message.ConnectionDetails) -> redis.Redis:
    options: dict[str, Any] = {}
    if details.login:
        options["username"] = details.login
    if details.password:
        options["password"] = details.password
    return redis.Redis.from_url(details.host or "redis://localhost:6379", **options)


class RedisConnectionAdapter(base.IConnection):
    """Lazily created redis client with a memoized PING health check."""

    def __init__(
        self,
        details: base.DetailsLike,
        client_factory: RedisClientFactory = create_redis_client,
    ):
        self.details = (
            message.ConnectionDetails.coerce(details) if details is not None else None
        )
        self.client_factory = client_factory
        self.client: Any = None
        self.connectivity = base.Connectivity.UNKNOWN
        self.last_error: Exception | None = None

    def connect(self) -> Self | None:
        if self.details is None:
            self.last_error = exceptions.NotConfigured("No redis connection details")
            logger.warning("Cannot connect to redis: no connection details given")
            return None

        if self.client is None:
            self.client = self.client_factory(self.details)
        return self

    def check_connection(self) -> bool:
        if self.client is None:
            return False

        try:
            self.client.ping()
        except redis_exc.RedisError as ex:
            self.last_error = exceptions.TransportUnavailable(str(ex))
            logger.warning("Redis backend is not reachable", exc_info=ex)
            return False

        return True


class RedisConnector(base.IConnector):
    """Redis backend: tasks are pushed to a list named after the exchange and
    results are read back from `<result_prefix><task_id>` keys.
    """

    supports_results = True

    def __init__(
        self,
        content_type: str = "application/json",
        result_prefix: str = "celery-task-meta-",
        client_factory: RedisClientFactory = create_redis_client,
    ):
        super().__init__(content_type=content_type, result_prefix=result_prefix)
        self.client_factory = client_factory
        self.last_error: Exception | None = None

    def get_connection_object(self, details: base.DetailsLike) -> RedisConnectionAdapter:
        return RedisConnectionAdapter(details, client_factory=self.client_factory)

    def connect(
        self, connection: RedisConnectionAdapter
    ) -> RedisConnectionAdapter | None:
        return connection.connect()

    def post_to_exchange(
        self,
        connection: RedisConnectionAdapter,
        details: base.PublishDetailsLike,
        task: bytes | str,
        params: base.PublishParamsLike = None,
    ) -> bool:
        envelope = self.build_envelope(details, task, params)
        exchange = envelope.properties.delivery_info.exchange
        try:
            connection.client.lpush(exchange, self.to_str(envelope.to_wire()))
        except Exception as ex:
            self.last_error = exceptions.TransportUnavailable(str(ex))
            logger.warning(
                "Could not push task id=%s to %s",
                envelope.properties.delivery_tag,
                exchange,
                exc_info=ex,
            )
            return False

        logger.info("Pushed task id=%s to %s", envelope.properties.delivery_tag, exchange)
        return True

    def finalize_result(self, connection: RedisConnectionAdapter, task_id: str) -> bool:
        key = self.get_result_key(task_id)
        try:
            if connection.client.exists(key):
                connection.client.delete(key)
                return True
        except redis_exc.RedisError as ex:
            self.last_error = exceptions.TransportUnavailable(str(ex))
            logger.warning("Could not remove result of task id=%s", task_id, exc_info=ex)

        return False

    def get_message_body(
        self,
        connection: RedisConnectionAdapter,
        task_id: str,
        expire: int = 0,
        remove_from_queue: bool = True,
    ) -> dict[str, Any] | bool:
        """Returns the result of task execution for `task_id`.

        :param expire: Unused in redis
        :param remove_from_queue: Delete the stored result once read
        :returns: {'body': JSON encoded result, 'complete_result': dict} or
        False if the result is not ready yet
        """
        try:
            raw = connection.client.get(self.get_result_key(task_id))
        except redis_exc.RedisError as ex:
            self.last_error = exceptions.TransportUnavailable(str(ex))
            logger.warning("Could not read result of task id=%s", task_id, exc_info=ex)
            return False

        if not raw:
            return False

        try:
            result = self.to_dict(raw)
        except ValueError as ex:
            self.last_error = ex
            logger.warning(
                "Stored result of task id=%s is not decodable", task_id, exc_info=ex
            )
            return False

        if remove_from_queue:
            self.finalize_result(connection, task_id)

        return {"complete_result": result, "body": json.dumps(result)}
