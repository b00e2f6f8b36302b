import base64
import enum
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, Self

import pydantic

from sqsbridge import exceptions, serializers
from sqsbridge.tasks import message

logger = logging.getLogger(__name__)

DetailsLike = message.ConnectionDetails | Mapping[str, Any] | None
PublishDetailsLike = message.PublishDetails | Mapping[str, Any]
PublishParamsLike = message.PublishParams | Mapping[str, Any] | None


class Connectivity(enum.Enum):
    UNKNOWN = "unknown"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class IConnection(ABC):
    """Connect / is-connected capability over a transport client that has
    neither concept natively.

    The connectivity check runs at most once per handle: the first answer is
    kept for the lifetime of the handle.
    """

    @abstractmethod
    def connect(self) -> Self | None:
        """Lazily creates the transport client. Returns None if the handle
        has no connection details."""
        ...

    @abstractmethod
    def check_connection(self) -> bool:
        """Single health check against the transport"""
        ...

    def is_connected(self) -> bool:
        if self.connectivity is Connectivity.UNKNOWN:
            self.connectivity = (
                Connectivity.CONNECTED
                if self.check_connection()
                else Connectivity.DISCONNECTED
            )
        return self.connectivity is Connectivity.CONNECTED


class IConnector(ABC):
    """Abstract broker connector used by the task-queue client.

    Message construction hooks are shared; every backend provides its own
    connection object, publish and result retrieval.
    """

    supports_results: ClassVar[bool] = False

    def __init__(
        self,
        content_type: str = "application/json",
        result_prefix: str = "celery-task-meta-",
    ):
        self.content_type = content_type
        self.result_prefix = result_prefix
        self.serializer = serializers.get_serializer(content_type)

    @abstractmethod
    def get_connection_object(self, details: DetailsLike) -> IConnection:
        """Returns a new, not yet connected, connection handle"""
        ...

    @abstractmethod
    def connect(self, connection: IConnection) -> IConnection | None:
        """Initializes the connection handle"""
        ...

    @abstractmethod
    def post_to_exchange(
        self,
        connection: IConnection,
        details: PublishDetailsLike,
        task: bytes | str,
        params: PublishParamsLike = None,
    ) -> bool:
        """Publishes a serialized task. True if the transport accepted it."""
        ...

    @abstractmethod
    def get_message_body(
        self,
        connection: IConnection,
        task_id: str,
        expire: int = 0,
        remove_from_queue: bool = True,
    ) -> dict[str, Any] | bool | None:
        """Returns {'body': json string, 'complete_result': dict} for a
        finished task, False if the result is not ready yet."""
        ...

    @abstractmethod
    def finalize_result(self, connection: IConnection, task_id: str) -> bool | None:
        """Removes the stored result for `task_id`, True if one was removed"""
        ...

    def get_headers(self) -> dict[str, Any]:
        """Headers sent along with every message. Override to add custom ones"""
        return {}

    def get_message(self, task: bytes | str) -> dict[str, Any]:
        if isinstance(task, str):
            task = task.encode("utf-8")
        return {
            "body": base64.b64encode(task).decode("ascii"),
            "headers": self.get_headers(),
            "content-type": self.content_type,
            "content-encoding": "binary",
        }

    def get_delivery_mode(self, params: PublishParamsLike = None) -> int:
        # 1 - transient, will not be written to disk
        # 2 - persistent
        delivery_mode = message.PublishParams.coerce(params).delivery_mode
        if delivery_mode is not None:
            return delivery_mode
        return message.PERSISTENT

    def to_str(self, value: Any) -> str:
        """Override to use a non-JSON envelope serialization"""
        return json.dumps(value)

    def to_dict(self, raw: str | bytes) -> Any:
        """Override to use a non-JSON envelope serialization"""
        return json.loads(raw)

    def get_result_key(self, task_id: str) -> str:
        return f"{self.result_prefix}{task_id}"

    def get_task_id(self, task: bytes | str) -> str | int:
        """Extracts the task id from the serialized task.

        :raises exceptions.MalformedTask: If the payload cannot be decoded or
        carries no `id`
        """
        try:
            body = self.serializer.loads(task)
        except (ValueError, TypeError) as ex:
            raise exceptions.MalformedTask(f"Task payload is not decodable: {ex}")

        if not isinstance(body, Mapping) or body.get("id") is None:
            raise exceptions.MalformedTask("Task payload has no 'id' field")

        task_id = body["id"]
        if isinstance(task_id, bool) or not isinstance(task_id, (str, int)):
            raise exceptions.MalformedTask(
                f"Task id must be a string or an integer, got {type(task_id).__name__}"
            )

        return task_id

    def build_envelope(
        self,
        details: PublishDetailsLike,
        task: bytes | str,
        params: PublishParamsLike = None,
    ) -> message.Envelope:
        """Builds the full envelope for a serialized task.

        :raises exceptions.MalformedTask: If the task id, the routing details
        or the delivery mode cannot be used in an envelope
        """
        task_id = self.get_task_id(task)
        try:
            publish_details = message.PublishDetails.coerce(details)
            return message.Envelope.model_validate(
                {
                    **self.get_message(task),
                    "properties": {
                        "body_encoding": "base64",
                        "reply_to": task_id,
                        "delivery_info": {
                            "priority": 0,
                            "routing_key": publish_details.binding,
                            "exchange": publish_details.exchange,
                        },
                        "delivery_mode": self.get_delivery_mode(params),
                        "delivery_tag": task_id,
                    },
                }
            )
        except pydantic.ValidationError as ex:
            raise exceptions.MalformedTask(f"Cannot build message envelope: {ex}")
