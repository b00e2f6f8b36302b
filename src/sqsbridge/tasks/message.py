import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Literal, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from sqsbridge import serializers

logger = logging.getLogger(__name__)

DeliveryMode = Literal[1, 2]
TRANSIENT: DeliveryMode = 1
PERSISTENT: DeliveryMode = 2


class Schema(BaseModel):
    """Base for every record exchanged with the task-queue client"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @classmethod
    def coerce(cls, value: "Self | Mapping[str, Any] | None") -> Self:
        """Accepts either a model instance or the plain mapping the caller
        framework hands over and returns a validated model.
        """
        if isinstance(value, cls):
            return value
        return cls.model_validate(dict(value or {}))


class ConnectionDetails(Schema):
    # AMQP naming is kept for the caller framework: vhost is the region,
    # login/password the access key pair and host the queue locator.
    vhost: str | None = None
    login: str | None = None
    password: str | None = Field(default=None, repr=False)
    host: str | None = None


class PublishDetails(Schema):
    binding: str | None = None
    exchange: str | None = None


class PublishParams(Schema):
    delivery_mode: DeliveryMode | None = None


class DeliveryInfo(Schema):
    priority: int = 0
    routing_key: str | None = None
    exchange: str | None = None


class Properties(Schema):
    body_encoding: str = "base64"
    reply_to: str | int
    delivery_info: DeliveryInfo
    delivery_mode: DeliveryMode = PERSISTENT
    delivery_tag: str | int


class Envelope(Schema):
    """Full message submitted to the transport as the message body."""

    body: str
    headers: dict[str, Any] = Field(default_factory=dict)
    content_type: str = Field(default="application/json", alias="content-type")
    content_encoding: str = Field(default="binary", alias="content-encoding")
    properties: Properties

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Task(Schema):
    """Task descriptor as published by the client side."""

    task: str
    id: UUID = Field(default_factory=uuid4)
    args: tuple = ()
    kwargs: dict[str, Any] = Field(default_factory=dict)
    eta: datetime | None = None
    expires: datetime | None = None

    @field_serializer("id")
    def serialize_id(self, v: UUID) -> str:
        return str(v)

    @field_serializer("eta", "expires")
    def serialize_datetime(self, v: datetime | None) -> str | None:
        return v.isoformat() if v else None

    def serialize(self, serializer: serializers.Serializer | None = None) -> bytes:
        serializer = serializer or serializers.JsonSerializer()
        data = self.model_dump(serialize_as_any=True)
        data["args"] = list(data["args"])
        return serializer.dumps(data)

    @classmethod
    def deserialize(
        cls, data: bytes, serializer: serializers.Serializer | None = None
    ) -> Self:
        serializer = serializer or serializers.JsonSerializer()
        raw_data: dict = serializer.loads(data)
        return cls.model_validate(raw_data)
