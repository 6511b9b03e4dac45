import re
from typing import TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from ethrpc.types.abi import ConstructorABI, FunctionABI


class EthRPCException(Exception):
    """
    An exception raised by ethrpc.
    """


class EthRPCAttributeError(EthRPCException, AttributeError):
    """
    Raised when trying to access items via ``.`` access.
    """


class ConfigError(EthRPCException):
    """
    Raised when a problem occurs when loading or overriding client configuration.
    """


class TransportError(EthRPCException):
    """
    Raised when the transport fails to deliver a request or to produce a response,
    such as connection failures or timeouts. These are never retried by ethrpc.
    """


class TransportTimeoutError(TransportError):
    """
    Raised when the transport gives up waiting for the node.
    """

    def __init__(self, timeout: Optional[float] = None, message: Optional[str] = None):
        self.timeout = timeout
        if message is None:
            message = "Timed out waiting for a response"
            message = f"{message} ({timeout}s)." if timeout is not None else f"{message}."

        super().__init__(message)


class InvalidResponseError(TransportError):
    """
    Raised when a response is not a valid JSON-RPC 2.0 envelope
    or does not correlate to the request that was sent.
    """


class RpcError(EthRPCException):
    """
    Raised when the node rejects a request. The node's error code and message
    are surfaced verbatim.
    """

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        self.message = message
        self.code = code
        self.data = data
        super().__init__(message)

    def __str__(self) -> str:
        return self.message if self.code is None else f"{self.message} (code={self.code})"

    @classmethod
    def from_response(cls, error: Union[dict, str]) -> "RpcError":
        """
        Create the most specific error for a JSON-RPC ``error`` member.

        Args:
            error (Union[dict, str]): The ``error`` value from the response.

        Returns:
            :class:`~ethrpc.exceptions.RpcError`
        """
        if not isinstance(error, dict):
            return cls(str(error))

        message = str(error.get("message", error))
        code = error.get("code")
        data = error.get("data")
        if code == METHOD_NOT_FOUND_CODE or _is_method_not_found_message(message):
            return MethodNotFoundError(message, code=code, data=data)

        elif code == EXECUTION_REVERTED_CODE or message.startswith("execution reverted"):
            return ExecutionRevertedError(message, code=code, data=data)

        return cls(message, code=code, data=data)


METHOD_NOT_FOUND_CODE = -32601
EXECUTION_REVERTED_CODE = 3


def _is_method_not_found_message(message: str) -> bool:
    # Not every node uses the standard code.
    return (
        "does not exist/is not available" in message
        or re.match(r"[m|M]ethod .*?not found", message) is not None
        or message.startswith("Unknown RPC Endpoint")
        or "RPC Endpoint has not been implemented" in message
    )


class MethodNotFoundError(RpcError):
    """
    Raised when the node does not implement the requested RPC method.
    """


class ExecutionRevertedError(RpcError):
    """
    Raised when contract execution reverted during a call or gas estimation.
    """

    @property
    def revert_data(self) -> Optional[str]:
        return self.data if isinstance(self.data, str) else None


class ContractDataError(EthRPCException):
    """
    Raised when issues occur with local contract data.
    **NOTE**: This error has nothing to do with on-chain
    contract logic errors; it is about ABI-related issues.
    """


class ABIEncodeError(ContractDataError):
    """
    Raised when arguments cannot be encoded for the given ABI.
    """


class ArgumentsLengthError(ABIEncodeError):
    """
    Raised when calling a contract method with the wrong number of arguments.
    """

    def __init__(
        self,
        arguments_length: int,
        inputs: Union["FunctionABI", "ConstructorABI", int, list, None] = None,
    ):
        prefix = (
            f"The number of the given arguments ({arguments_length}) "
            f"do not match what is defined in the ABI"
        )
        if inputs is None:
            super().__init__(f"{prefix}.")
            return

        inputs_ls: list = inputs if isinstance(inputs, list) else [inputs]
        if not inputs_ls:
            suffix = ""
        elif any(not isinstance(x, int) for x in inputs_ls):
            parts = ""
            for ipt in inputs_ls:
                part = f"{ipt}" if isinstance(ipt, int) else ipt.signature
                parts = f"{parts}\n\t{part}"

            suffix = f":\n{parts}"

        else:
            options = ", ".join([str(x) for x in inputs_ls])
            one_of = "one of " if len(inputs_ls) > 1 else ""
            suffix = f" ({one_of}{options})"

        super().__init__(f"{prefix}{suffix}")


class ABIDecodeError(ContractDataError):
    """
    Raised when return data or a log does not match the ABI it is decoded with.
    """

    def __init__(self, message: Optional[str] = None):
        message = message or "Output corrupted."
        super().__init__(message)


class InvalidUnit(EthRPCException, ValueError):
    """
    Raised when converting with a denomination that does not exist.
    """

    def __init__(self, unit: str):
        self.unit = unit
        super().__init__(f"Unknown unit '{unit}'.")


class FilterError(EthRPCException):
    """
    Raised when a filter is used outside of its lifecycle.
    """


class TransactionNotFoundError(EthRPCException):
    """
    Raised when the node does not know about a transaction.
    """

    def __init__(self, transaction_hash: Optional[str] = None, message: Optional[str] = None):
        self.transaction_hash = transaction_hash
        if message is None:
            message = (
                f"Transaction '{transaction_hash}' not found."
                if transaction_hash
                else "Transaction not found."
            )

        super().__init__(message)


class TransactionTimeoutError(TransactionNotFoundError):
    """
    Raised when a transaction is not mined within the requested time.
    """

    def __init__(self, transaction_hash: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            transaction_hash,
            message=f"Transaction '{transaction_hash}' not mined after {timeout} seconds.",
        )
