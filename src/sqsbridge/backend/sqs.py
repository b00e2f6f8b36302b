import logging
from typing import Any, Callable, Self

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sqsbridge import exceptions
from sqsbridge.tasks import message

from . import base

logger = logging.getLogger(__name__)

SQSClientFactory = Callable[[message.ConnectionDetails], Any]


def create_sqs_client(
    details: message.ConnectionDetails, endpoint_url: str | None = None
) -> Any:
    return boto3.client(
        "sqs",
        region_name=details.vhost,
        aws_access_key_id=details.login,
        aws_secret_access_key=details.password,
        endpoint_url=endpoint_url,
    )


class SQSConnectionAdapter(base.IConnection):
    """Holds the SQS client and the queue used for this connection.

    The boto3 client has no notion of being connected, the adapter gives it
    the connect / is_connected pair every connector expects.
    """

    def __init__(
        self,
        details: base.DetailsLike,
        client_factory: SQSClientFactory = create_sqs_client,
    ):
        self.details = (
            message.ConnectionDetails.coerce(details) if details is not None else None
        )
        self.client_factory = client_factory
        self.sqs_client: Any = None
        self.sqs_queue_url: str | None = None
        self.connectivity = base.Connectivity.UNKNOWN
        self.last_error: Exception | None = None

    def connect(self) -> Self | None:
        if self.details is None:
            self.last_error = exceptions.NotConfigured("No SQS connection details")
            logger.warning("Cannot connect to SQS: no connection details given")
            return None

        if self.sqs_client is not None:
            return self

        logger.debug("Creating SQS client for region=%s", self.details.vhost)
        try:
            self.sqs_client = self.client_factory(self.details)
        except BotoCoreError as ex:
            self.last_error = exceptions.TransportUnavailable(str(ex))
            logger.warning("Cannot create SQS client", exc_info=ex)
            return None

        self.sqs_queue_url = self.details.host
        return self

    def check_connection(self) -> bool:
        """Checks if the credentials can actually reach the queue"""
        if self.sqs_client is None or not self.sqs_queue_url:
            return False

        try:
            self.sqs_client.get_queue_attributes(QueueUrl=self.sqs_queue_url)
        except (ClientError, BotoCoreError) as ex:
            self.last_error = exceptions.TransportUnavailable(str(ex))
            logger.warning(
                "SQS queue %s is not reachable", self.sqs_queue_url, exc_info=ex
            )
            return False

        logger.debug("SQS queue %s is reachable", self.sqs_queue_url)
        return True


class SQSConnector(base.IConnector):
    """Driver for Amazon SQS.

    SQS has no exchanges or bindings: routing details are only carried in the
    envelope for workers that inspect them. There is no result store either,
    result retrieval is a no-op on this backend.
    """

    supports_results = False

    def __init__(
        self,
        content_type: str = "application/json",
        result_prefix: str = "celery-task-meta-",
        client_factory: SQSClientFactory = create_sqs_client,
    ):
        super().__init__(content_type=content_type, result_prefix=result_prefix)
        self.client_factory = client_factory
        self.last_error: Exception | None = None

    def get_connection_object(self, details: base.DetailsLike) -> SQSConnectionAdapter:
        return SQSConnectionAdapter(details, client_factory=self.client_factory)

    def connect(self, connection: SQSConnectionAdapter) -> SQSConnectionAdapter | None:
        return connection.connect()

    def post_to_exchange(
        self,
        connection: SQSConnectionAdapter,
        details: base.PublishDetailsLike,
        task: bytes | str,
        params: base.PublishParamsLike = None,
    ) -> bool:
        """Posts the message to SQS.

        :raises exceptions.MalformedTask: If the task carries no decodable id
        :returns: False if the transport rejected the message, nothing is
        retried
        """
        envelope = self.build_envelope(details, task, params)
        try:
            connection.sqs_client.send_message(
                QueueUrl=connection.sqs_queue_url,
                MessageBody=self.to_str(envelope.to_wire()),
            )
        except Exception as ex:
            self.last_error = exceptions.TransportUnavailable(str(ex))
            logger.warning(
                "Could not send task id=%s to %s",
                envelope.properties.delivery_tag,
                connection.sqs_queue_url,
                exc_info=ex,
            )
            return False

        logger.info(
            "Sent task id=%s to %s",
            envelope.properties.delivery_tag,
            connection.sqs_queue_url,
        )
        return True

    def get_message_body(
        self,
        connection: SQSConnectionAdapter,
        task_id: str,
        expire: int = 0,
        remove_from_queue: bool = True,
    ) -> None:
        return None

    def finalize_result(self, connection: SQSConnectionAdapter, task_id: str) -> None:
        return None
