from abc import abstractmethod
from typing import Any

from ethrpc.utils.basemodel import BaseModel
from ethrpc.utils.misc import log_instead_of_fail


class TransportAPI(BaseModel):
    """
    An abstraction of a connection to a node that speaks JSON-RPC 2.0.
    A transport delivers one request envelope and returns the node's response
    envelope; correlation and error mapping happen in the
    :class:`~ethrpc.managers.requests.RequestManager`.

    Transports must be safe to use from several threads at once and
    must never retry.
    """

    name: str
    """The name of the transport."""

    timeout: float = 30.0
    """Seconds to wait for a response."""

    request_header: dict = {}
    """A header to set on requests, for transports that have headers."""

    @log_instead_of_fail(default="<TransportAPI>")
    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.connection_str}>"

    @property
    def connection_str(self) -> str:
        """
        The str representing how to reach the node, such as an HTTP URL
        or an IPC path. Must not reveal credentials.
        """
        return ""

    @abstractmethod
    def send(self, payload: dict) -> Any:
        """
        Deliver one JSON-RPC request and return the decoded response.

        Args:
            payload (dict): The request envelope.

        Raises:
            :class:`~ethrpc.exceptions.TransportError`: When the request could not
              be delivered or the response could not be read.

        Returns:
            Any: The response envelope, usually a dict.
        """

    @abstractmethod
    def is_connected(self) -> bool:
        """
        ``True`` if the node is currently reachable. ``False`` otherwise.
        Never raises.
        """

    def close(self):
        """
        Release any connection the transport holds.
        """
