import base64
import json

import pytest
from botocore.exceptions import NoRegionError

from sqsbridge import SQSBridgeApp, Settings, create_app, exceptions
from sqsbridge.backend import RedisConnector, SQSConnector
from sqsbridge.tasks.message import ConnectionDetails


@pytest.fixture
def app(sqs_connector, details, publish_details):
    return SQSBridgeApp(
        name="test",
        connector=sqs_connector,
        connection_details=details,
        publish_details=publish_details,
    )


def _sent_task(envelope):
    return json.loads(base64.b64decode(envelope["body"]))


def test_registered_task_send(app, sqs_client):
    @app.task(name="proj.tasks.add")
    def add(x, y):
        return x + y

    task_id = add.send(12, 23)

    assert add(1, 2) == 3
    assert "proj.tasks.add" in app.registry
    (envelope,) = sqs_client.sent_envelopes()
    assert envelope["properties"]["delivery_tag"] == task_id
    sent = _sent_task(envelope)
    assert sent["task"] == "proj.tasks.add"
    assert sent["args"] == [12, 23]
    assert sent["id"] == task_id


def test_default_task_name(app):
    @app.task()
    def hello(name=None):
        return f"Hello, {name or 'World'} !!"

    assert f"{__name__}.hello" in app.registry


def test_connection_is_reused(app, sqs_factory, sqs_client):
    app.send_task("proj.tasks.add", (1, 2))
    app.send_task("proj.tasks.add", (3, 4), {"retry": False}, {"delivery_mode": 1})

    assert len(sqs_factory.created) == 1
    first, second = sqs_client.sent_envelopes()
    assert first["properties"]["delivery_mode"] == 2
    assert second["properties"]["delivery_mode"] == 1
    assert _sent_task(second)["kwargs"] == {"retry": False}


def test_publish_failure(app, sqs_client):
    sqs_client.send_error = RuntimeError("throttled")

    with pytest.raises(exceptions.PublishError):
        app.send_task("proj.tasks.add", (1, 2))


def test_not_configured(sqs_connector):
    app = SQSBridgeApp(name="test", connector=sqs_connector, connection_details=None)

    assert app.is_connected() is False
    with pytest.raises(exceptions.NotConfigured):
        app.send_task("proj.tasks.add", (1, 2))


def test_strict_send_of_unknown_task(app, sqs_client):
    with pytest.raises(exceptions.TaskNotRegistered):
        app.send_task("proj.tasks.unknown", strict=True)

    assert not sqs_client.calls


def test_is_connected(app, sqs_client):
    assert app.is_connected() is True
    assert sqs_client.calls[0][0] == "get_queue_attributes"


def test_get_result_unimplemented_on_sqs(app, sqs_client):
    with pytest.raises(exceptions.Unimplemented):
        app.get_result("task-42")

    assert not sqs_client.calls


def test_get_result_from_redis(redis_connector, redis_client, details):
    details["host"] = "redis://localhost:6379/0"
    redis_client.values["celery-task-meta-task-42"] = b'{"status": "SUCCESS", "result": 3}'
    app = SQSBridgeApp(name="test", connector=redis_connector, connection_details=details)

    response = app.get_result("task-42")

    assert response["complete_result"] == {"status": "SUCCESS", "result": 3}
    assert app.get_result("task-42") is False


def test_create_app_from_settings():
    settings = Settings(
        backend="sqs",
        region="eu-west-1",
        access_key="K",
        secret_key="S",
        queue_url="https://sqs.eu-west-1.amazonaws.com/123456789012/tasks",
        exchange="tasks",
        binding="tasks",
    )

    app = create_app("worker", settings)

    assert isinstance(app.connector, SQSConnector)
    assert app.connection_details.vhost == "eu-west-1"
    assert app.connection_details.host.endswith("/tasks")
    assert app.publish_details.exchange == "tasks"


def test_create_redis_app_from_settings():
    settings = Settings(backend="redis", queue_url="redis://localhost:6379/0")

    app = create_app(settings=settings)

    assert isinstance(app.connector, RedisConnector)


def _no_region_factory(details: ConnectionDetails):
    raise NoRegionError()


def test_client_creation_failure(details):
    app = SQSBridgeApp(
        name="test",
        connector=SQSConnector(client_factory=_no_region_factory),
        connection_details=details,
    )

    assert app.is_connected() is False
    with pytest.raises(exceptions.TransportUnavailable):
        app.send_task("proj.tasks.add", (1, 2))
