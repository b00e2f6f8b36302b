import json

import pytest
from redis import exceptions as redis_exc

from sqsbridge.backend import RedisConnector, SQSConnector


class FakeSQSClient:
    """Records calls the way a boto3 sqs client would receive them."""

    def __init__(self):
        self.calls = []
        self.send_error = None
        self.attributes_error = None

    def get_queue_attributes(self, **kwargs):
        self.calls.append(("get_queue_attributes", kwargs))
        if self.attributes_error:
            raise self.attributes_error
        return {"Attributes": {"ApproximateNumberOfMessages": "0"}}

    def send_message(self, **kwargs):
        self.calls.append(("send_message", kwargs))
        if self.send_error:
            raise self.send_error
        return {"MessageId": "3f1a6b2c-0000-4000-8000-000000000000"}

    def sent_envelopes(self):
        return [
            json.loads(kwargs["MessageBody"])
            for name, kwargs in self.calls
            if name == "send_message"
        ]


class FakeRedisClient:
    def __init__(self):
        self.calls = []
        self.lists = {}
        self.values = {}
        self.ping_error = None

    def ping(self):
        self.calls.append(("ping",))
        if self.ping_error:
            raise self.ping_error
        return True

    def lpush(self, name, *values):
        self.calls.append(("lpush", name))
        if name is None:
            raise redis_exc.DataError("Invalid input of type: 'NoneType'")
        self.lists.setdefault(name, [])[:0] = reversed(values)
        return len(self.lists[name])

    def get(self, name):
        self.calls.append(("get", name))
        return self.values.get(name)

    def exists(self, *names):
        self.calls.append(("exists", names))
        return sum(1 for name in names if name in self.values)

    def delete(self, *names):
        self.calls.append(("delete", names))
        return sum(1 for name in names if self.values.pop(name, None) is not None)


class RecordingFactory:
    def __init__(self, client):
        self.client = client
        self.created = []

    def __call__(self, details):
        self.created.append(details)
        return self.client


@pytest.fixture
def details():
    return {
        "vhost": "us-east-1",
        "login": "K",
        "password": "S",
        "host": "queue-url",
    }


@pytest.fixture
def publish_details():
    return {"binding": "celery", "exchange": "celery"}


@pytest.fixture
def sqs_client():
    return FakeSQSClient()


@pytest.fixture
def sqs_factory(sqs_client):
    return RecordingFactory(sqs_client)


@pytest.fixture
def sqs_connector(sqs_factory):
    return SQSConnector(client_factory=sqs_factory)


@pytest.fixture
def redis_client():
    return FakeRedisClient()


@pytest.fixture
def redis_factory(redis_client):
    return RecordingFactory(redis_client)


@pytest.fixture
def redis_connector(redis_factory):
    return RedisConnector(client_factory=redis_factory)


@pytest.fixture
def task_bytes():
    return json.dumps(
        {"id": "task-42", "task": "proj.tasks.add", "args": [1, 2], "kwargs": {}}
    ).encode("utf-8")
