import functools
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Mapping,
    ParamSpec,
    Protocol,
    TypeVar,
    cast,
)

from sqsbridge import backend, config, exceptions, tasks
from sqsbridge.backend import base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R", covariant=True)


class TaskWithSend(Protocol[P, R]):
    """Protocol for a function that has a `.send` method attached."""

    def __call__(self, *args: P.args, **kwargs: P.kwargs) -> R: ...

    send: Callable[P, str]


@dataclass
class SQSBridgeApp:
    """Client side of the task queue: registers task names and publishes
    them through a connector.
    """

    name: str
    connector: base.IConnector
    connection_details: base.DetailsLike
    publish_details: base.PublishDetailsLike = field(default_factory=dict)
    registry: dict[str, Callable[..., Any]] = field(default_factory=dict)
    _connection: base.IConnection | None = field(default=None, init=False, repr=False)

    def task(self, name: str | None = None):
        """Wrapper over a function to register it as a task that can be
        published to the queue with `.send(...)`.

        :param name: Task name the workers know the task by. Defaults to
        `module.function`
        """

        def task_wrapper(func: Callable[P, R]):
            task_full_name = name or f"{func.__module__}.{func.__name__}"
            self.registry[task_full_name] = func

            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                return func(*args, **kwargs)

            def send(*args, **kwargs) -> str:
                """Publishes the task, returns its id"""
                return self.send_task(task_full_name, args, kwargs)

            wrapper_with_send = cast(TaskWithSend[P, R], wrapper)
            wrapper_with_send.send = send

            return wrapper_with_send

        return task_wrapper

    def get_connection(self) -> base.IConnection:
        """Returns the connected handle, creating it on first use.

        :raises exceptions.NotConfigured: If no connection details are set
        :raises exceptions.TransportUnavailable: If the transport client cannot
        be created
        """
        if self._connection is None:
            handle = self.connector.get_connection_object(self.connection_details)
            connection = self.connector.connect(handle)
            if connection is None:
                if isinstance(handle.last_error, exceptions.ConnectorError):
                    raise handle.last_error
                raise exceptions.NotConfigured(
                    f"App {self.name} has no connection details"
                )
            self._connection = connection

        return self._connection

    def is_connected(self) -> bool:
        try:
            return self.get_connection().is_connected()
        except exceptions.ConnectorError:
            return False

    def send_task(
        self,
        name: str,
        args: tuple | list = (),
        kwargs: Mapping[str, Any] | None = None,
        params: base.PublishParamsLike = None,
        strict: bool = False,
    ) -> str:
        """Publishes a task by name.

        :param strict: Refuse tasks that were not registered in this app
        :raises exceptions.TaskNotRegistered: If `strict` and the task is unknown
        :raises exceptions.PublishError: If the connector did not accept the task
        :returns: The task id
        """
        if strict and name not in self.registry:
            raise exceptions.TaskNotRegistered(f"Task {name} is not registered")

        new_task = tasks.message.Task(
            task=name, args=tuple(args), kwargs=dict(kwargs or {})
        )
        task_id = str(new_task.id)
        logger.info("Sending task=%s id=%s", name, task_id)

        published = self.connector.post_to_exchange(
            self.get_connection(),
            self.publish_details,
            new_task.serialize(self.connector.serializer),
            params,
        )
        if not published:
            raise exceptions.PublishError(f"Task {name} id={task_id} was not published")

        return task_id

    def get_result(
        self, task_id: str, remove_from_queue: bool = True
    ) -> dict[str, Any] | bool:
        """Fetches the result of a task.

        :raises exceptions.Unimplemented: If the connector has no result store
        :returns: {'body', 'complete_result'} or False if not ready yet
        """
        if not self.connector.supports_results:
            raise exceptions.Unimplemented(
                f"{type(self.connector).__name__} does not store task results"
            )

        response = self.connector.get_message_body(
            self.get_connection(), task_id, remove_from_queue=remove_from_queue
        )
        return response if response else False


def create_app(
    name: str = "sqsbridge", settings: config.Settings | None = None
) -> SQSBridgeApp:
    """Builds an app from the environment settings"""
    settings = settings or config.get_settings()
    return SQSBridgeApp(
        name=name,
        connector=backend.ConnectorFactory.create(
            backend.BackendType(settings.backend), settings
        ),
        connection_details=settings.connection_details(),
        publish_details=settings.publish_details(),
    )
