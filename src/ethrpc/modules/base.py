import functools
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ethrpc.client import Client
    from ethrpc.config import ClientConfig
    from ethrpc.managers.requests import RequestManager


def deferrable(fn: Callable) -> Callable:
    """
    Mark a blocking method of a :class:`DeferrableMixin` subclass to also get a
    deferred twin, named ``<name>_async``. The twin takes the same arguments plus
    an optional ``callback`` and returns a ``concurrent.futures.Future``.
    """
    fn.__deferrable__ = True  # type: ignore[attr-defined]
    return fn


def _create_deferred(fn: Callable) -> Callable:
    @functools.wraps(fn)
    def deferred(self, *args, callback=None, **kwargs):
        return self.requests.defer(fn, self, *args, callback=callback, **kwargs)

    deferred.__name__ = f"{fn.__name__}_async"
    deferred.__qualname__ = f"{fn.__qualname__}_async"
    deferred.__doc__ = (
        f"Deferred :meth:`{fn.__name__}`. Takes the same arguments plus an optional "
        "``callback(error, result)`` and returns a ``concurrent.futures.Future``."
    )
    del deferred.__wrapped__
    return deferred


class DeferrableMixin:
    """
    Generates the ``_async`` twins of the methods marked :func:`deferrable`.
    Subclasses must provide ``requests``.
    """

    requests: "RequestManager"

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for name, member in list(vars(cls).items()):
            if not getattr(member, "__deferrable__", False):
                continue

            async_name = f"{name}_async"
            if async_name not in vars(cls):
                setattr(cls, async_name, _create_deferred(member))


class ModuleAPI(DeferrableMixin):
    """
    A namespace of RPC methods, such as ``client.eth``.
    """

    def __init__(self, client: "Client"):
        self.client = client

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"

    @property
    def requests(self) -> "RequestManager":
        return self.client.requests

    @property
    def config(self) -> "ClientConfig":
        return self.client.config

    def _request(self, method: str, params: Any = None) -> Any:
        return self.requests.request(method, params)
