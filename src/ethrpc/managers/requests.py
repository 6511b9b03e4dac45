import itertools
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional

from ethrpc.api.transport import TransportAPI
from ethrpc.exceptions import InvalidResponseError, RpcError
from ethrpc.logging import logger

ResultCallback = Callable[[Optional[Exception], Any], None]
"""
A continuation of a deferred call: called once with ``(error, None)`` or ``(None, result)``.
"""

DEFAULT_MAX_WORKERS = 8


class RequestManager:
    """
    Correlates JSON-RPC requests with their responses over a transport, and runs
    blocking operations in the background for their deferred (``_async``) forms.

    Usage example::

        requests = RequestManager(transport)
        block_number = requests.request("eth_blockNumber")
        future = requests.defer(requests.request, "eth_gasPrice", callback=print)
    """

    def __init__(self, transport: TransportAPI, max_workers: int = DEFAULT_MAX_WORKERS):
        self._transport = transport
        self.max_workers = max_workers
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._transport!r}>"

    @property
    def transport(self) -> TransportAPI:
        return self._transport

    @transport.setter
    def transport(self, transport: TransportAPI):
        self._transport = transport

    def next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    def build_request(self, method: str, params: Optional[Iterable] = None) -> dict:
        return {
            "jsonrpc": "2.0",
            "id": self.next_id(),
            "method": method,
            "params": list(params or []),
        }

    def request(self, method: str, params: Optional[Iterable] = None) -> Any:
        """
        Make a blocking JSON-RPC request.

        Args:
            method (str): The RPC method, such as ``eth_blockNumber``.
            params (Optional[Iterable]): The positional parameters.

        Raises:
            :class:`~ethrpc.exceptions.TransportError`: When the transport fails
              or the response is malformed or does not belong to the request.
            :class:`~ethrpc.exceptions.RpcError`: When the node returns an error.

        Returns:
            Any: The ``result`` member of the response.
        """
        payload = self.build_request(method, params)
        logger.debug(f"Request {payload['id']}: {method} {payload['params']}")
        response = self._transport.send(payload)
        logger.debug(f"Response {payload['id']}: {response}")
        return self.validate_response(payload, response)

    def validate_response(self, payload: dict, response: Any) -> Any:
        if not isinstance(response, dict):
            raise InvalidResponseError(
                f"Invalid response to '{payload['method']}': expected an object, "
                f"got {type(response).__name__}."
            )

        elif response.get("id") != payload["id"]:
            raise InvalidResponseError(
                f"Response id '{response.get('id')}' does not match "
                f"request id '{payload['id']}' ({payload['method']})."
            )

        elif response.get("error") is not None:
            raise RpcError.from_response(response["error"])

        elif "result" not in response:
            raise InvalidResponseError(
                f"Response to '{payload['method']}' has neither a result nor an error."
            )

        return response["result"]

    @property
    def executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="ethrpc-worker"
                )

            return self._executor

    def defer(
        self, fn: Callable, *args, callback: Optional[ResultCallback] = None, **kwargs
    ) -> Future:
        """
        Run a blocking operation on the worker pool.

        Args:
            fn (Callable): The blocking operation.
            *args: Positional arguments for ``fn``.
            callback (Optional[ResultCallback]): Called exactly once, from the worker
              thread, with ``(error, None)`` or ``(None, result)``.
            **kwargs: Keyword arguments for ``fn``.

        Returns:
            ``concurrent.futures.Future``: Resolves with the result or the error.
        """

        def run():
            try:
                result = fn(*args, **kwargs)
            except Exception as err:
                if callback is not None:
                    _invoke_callback(callback, err, None)

                raise

            if callback is not None:
                _invoke_callback(callback, None, result)

            return result

        return self.executor.submit(run)

    def close(self):
        """
        Stop the worker pool (waiting for running calls) and close the transport.
        """
        with self._executor_lock:
            executor, self._executor = self._executor, None

        if executor is not None:
            executor.shutdown(wait=True)

        self._transport.close()


def _invoke_callback(callback: ResultCallback, err: Optional[Exception], result: Any):
    try:
        callback(err, result)
    except Exception as callback_err:
        # The outcome of the call is still delivered through the future.
        logger.error_from_exception(callback_err, "Exception in callback of deferred call.")


__all__ = ["RequestManager", "ResultCallback"]
