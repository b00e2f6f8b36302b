import functools
from enum import Enum

from sqsbridge import config

from .base import Connectivity, IConnection, IConnector
from .redis import RedisConnectionAdapter, RedisConnector
from .sqs import SQSConnectionAdapter, SQSConnector, create_sqs_client

__all__ = [
    "BackendType",
    "ConnectorFactory",
    "Connectivity",
    "IConnection",
    "IConnector",
    "RedisConnectionAdapter",
    "RedisConnector",
    "SQSConnectionAdapter",
    "SQSConnector",
]


class BackendType(Enum):
    SQS = "sqs"
    REDIS = "redis"


class ConnectorFactory:

    @classmethod
    def create(
        cls,
        backend_type: BackendType,
        settings: config.Settings | None = None,
    ) -> IConnector:
        settings = settings or config.get_settings()
        match backend_type:
            case BackendType.SQS:
                return SQSConnector(
                    content_type=settings.content_type,
                    result_prefix=settings.result_prefix,
                    client_factory=functools.partial(
                        create_sqs_client, endpoint_url=settings.endpoint_url
                    ),
                )
            case BackendType.REDIS:
                return RedisConnector(
                    content_type=settings.content_type,
                    result_prefix=settings.result_prefix,
                )
            case _:
                raise RuntimeError("Unknown backend type")
