from typing import Any, Optional

import requests
from pydantic import PrivateAttr
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException, Timeout

from ethrpc.api.transport import TransportAPI
from ethrpc.exceptions import InvalidResponseError, TransportError, TransportTimeoutError
from ethrpc.logging import logger, sanitize_url

DEFAULT_URI = "http://127.0.0.1:8545"
DEFAULT_HEADERS = {"Content-Type": "application/json"}


class HTTPTransport(TransportAPI):
    """
    JSON-RPC over HTTP(S), with a connection-pooling ``requests`` session.

    Usage example::

        transport = HTTPTransport(uri="https://node.example.com/v3/my-key", timeout=10)
    """

    name: str = "http"
    uri: str = DEFAULT_URI

    _session: Optional[requests.Session] = PrivateAttr(default=None)

    @property
    def connection_str(self) -> str:
        return sanitize_url(self.uri)

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({**DEFAULT_HEADERS, **self.request_header})

        return self._session

    def send(self, payload: dict) -> Any:
        try:
            response = self.session.post(self.uri, json=payload, timeout=self.timeout)
        except Timeout as err:
            raise TransportTimeoutError(timeout=self.timeout) from err
        except RequestsConnectionError as err:
            raise TransportError(f"Unable to connect to '{self.connection_str}'.") from err
        except RequestException as err:
            raise TransportError(str(err)) from err

        if not response.ok:
            # Nodes also use HTTP error codes for JSON-RPC errors; prefer the body.
            try:
                return response.json()
            except ValueError as err:
                raise TransportError(
                    f"HTTP {response.status_code} from '{self.connection_str}': {response.reason}"
                ) from err

        try:
            return response.json()
        except ValueError as err:
            raise InvalidResponseError(
                f"Response from '{self.connection_str}' is not JSON."
            ) from err

    def is_connected(self) -> bool:
        payload = {"jsonrpc": "2.0", "id": 0, "method": "web3_clientVersion", "params": []}
        try:
            self.send(payload)
        except TransportError as err:
            logger.debug(f"Not connected to '{self.connection_str}': {err}")
            return False

        return True

    def close(self):
        if self._session is not None:
            self._session.close()
            self._session = None
