class ConnectorError(Exception):
    """Base class for all connector errors"""

    pass


class NotConfigured(ConnectorError):
    """Connect attempted without any connection details"""

    pass


class TransportUnavailable(ConnectorError):
    """The queue transport refused a health check or a send"""

    pass


class MalformedTask(ConnectorError):
    """Task payload cannot be decoded into a structure with an `id`"""

    pass


class Unimplemented(ConnectorError):
    """The backend does not implement the requested capability"""

    pass


class PublishError(ConnectorError):
    """Raised if the connector could not hand a task over to the transport"""

    pass


class InvalidTaskData(Exception):
    """Task serialized data cannot be parsed."""

    pass


class TaskNotRegistered(Exception):
    """If a task is sent without being registered in the app"""

    pass
