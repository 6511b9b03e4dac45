from typing import Any

from requests.exceptions import RequestException, Timeout
from web3 import HTTPProvider, IPCProvider
from web3.exceptions import Web3Exception

from ethrpc.api.transport import TransportAPI
from ethrpc.exceptions import InvalidResponseError, TransportError, TransportTimeoutError
from ethrpc.logging import logger, sanitize_url


class Web3Transport(TransportAPI):
    """
    Sends requests through any ``web3.py`` provider, such as ``HTTPProvider`` or
    ``IPCProvider``. Providers number their own requests, so responses are
    re-stamped with the id of the request they answer.

    Usage example::

        from web3 import IPCProvider

        transport = Web3Transport(provider=IPCProvider("/tmp/geth.ipc"))
    """

    name: str = "web3"
    provider: Any

    @classmethod
    def from_uri(cls, uri: str, **kwargs) -> "Web3Transport":
        """
        Create a transport for an HTTP(S) URL or an IPC path.
        """
        timeout = kwargs.get("timeout", 30.0)
        if uri.startswith(("http://", "https://")):
            # Retrying is left to the caller.
            provider = HTTPProvider(
                uri, request_kwargs={"timeout": timeout}, exception_retry_configuration=None
            )
        elif uri.endswith(".ipc"):
            provider = IPCProvider(uri, timeout=timeout)
        else:
            raise TransportError(f"Unsupported URI '{sanitize_url(uri)}'.")

        return cls(provider=provider, **kwargs)

    @property
    def connection_str(self) -> str:
        endpoint = getattr(self.provider, "endpoint_uri", None)
        if endpoint:
            return sanitize_url(str(endpoint))

        ipc_path = getattr(self.provider, "ipc_path", None)
        return str(ipc_path) if ipc_path else type(self.provider).__name__

    def send(self, payload: dict) -> Any:
        try:
            response = self.provider.make_request(payload["method"], payload["params"])
        except Timeout as err:
            raise TransportTimeoutError(timeout=self.timeout) from err
        except (RequestException, OSError, Web3Exception) as err:
            raise TransportError(str(err)) from err

        if not isinstance(response, dict):
            raise InvalidResponseError(
                f"Provider returned {type(response).__name__} instead of a response."
            )

        # The provider's id belongs to its own counter.
        return {**response, "id": payload["id"]}

    def is_connected(self) -> bool:
        try:
            return bool(self.provider.is_connected())
        except (RequestException, OSError, Web3Exception) as err:
            logger.debug(f"Not connected to '{self.connection_str}': {err}")
            return False
