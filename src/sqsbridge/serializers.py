"""Task body serializers.

The serializer decides how a task descriptor is turned into the opaque bytes
carried (base64 encoded) in the envelope ``body``. Its ``content_type`` ends up
in the envelope so that workers know how to decode the body again.
"""

import json
import logging
from typing import Any, Protocol, cast

import msgpack

from sqsbridge import exceptions

logger = logging.getLogger(__name__)


class Serializer(Protocol):
    content_type: str

    def dumps(self, data: Any) -> bytes: ...

    def loads(self, raw: bytes | str) -> Any: ...


class JsonSerializer:
    content_type = "application/json"

    def dumps(self, data: Any) -> bytes:
        try:
            return json.dumps(data).encode("utf-8")
        except (TypeError, ValueError) as err:
            logger.error("Invalid type used on task data")
            raise exceptions.InvalidTaskData(err)

    def loads(self, raw: bytes | str) -> Any:
        return json.loads(raw)


class MsgpackSerializer:
    content_type = "application/x-msgpack"

    def dumps(self, data: Any) -> bytes:
        try:
            return cast(bytes, msgpack.packb(data, use_bin_type=True))
        except TypeError as err:
            logger.error("Invalid type used on task data")
            raise exceptions.InvalidTaskData(err)

    def loads(self, raw: bytes | str) -> Any:
        return msgpack.unpackb(raw, raw=False)


SERIALIZERS: dict[str, type[Serializer]] = {
    JsonSerializer.content_type: JsonSerializer,
    MsgpackSerializer.content_type: MsgpackSerializer,
}


def get_serializer(content_type: str) -> Serializer:
    """Returns a serializer instance registered for `content_type`

    :raises ValueError: If no serializer handles the content type
    """
    try:
        return SERIALIZERS[content_type]()
    except KeyError:
        raise ValueError(f"No serializer registered for {content_type!r}")
