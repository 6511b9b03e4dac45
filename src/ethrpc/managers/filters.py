"""
Polling filters. Nodes only answer requests, so "subscriptions" are emulated by
installing a filter on the node and asking it for changes on a schedule.
All watchers of a client share one scheduler thread.
"""

import heapq
import itertools
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any, Optional, Union

from hexbytes import HexBytes

from ethrpc.exceptions import EthRPCException, FilterError
from ethrpc.logging import logger
from ethrpc.managers.requests import RequestManager
from ethrpc.types.blocks import SyncingStatus
from ethrpc.types.events import FilterOptions, Log

Listener = Callable[[Optional[Exception], Any], None]
"""
A filter listener, called with ``(error, None)`` or ``(None, changes)``.
"""

Formatter = Callable[[Any], Any]
"""
Converts one raw entry from the node into its Python value.
"""

FilterSpec = Union[str, FilterOptions, dict]


class FilterState(str, Enum):
    CREATED = "created"
    WATCHING = "watching"
    STOPPED = "stopped"


class PollingWatcher:
    """
    Base class for anything the scheduler polls. Subclasses implement :meth:`poll`
    and decide which results are worth notifying listeners about.
    """

    def __init__(self, manager: "FilterManager", poll_interval: float):
        self.manager = manager
        self.poll_interval = poll_interval
        self.state = FilterState.CREATED
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.state.value}>"

    @property
    def requests(self) -> RequestManager:
        return self.manager.requests

    @property
    def is_watching(self) -> bool:
        return self.state == FilterState.WATCHING

    @property
    def listeners(self) -> list[Listener]:
        with self._lock:
            return list(self._listeners)

    def add_listener(self, listener: Listener) -> "PollingWatcher":
        """
        Attach another listener. Every listener receives every notification.
        """
        with self._lock:
            if self.state == FilterState.STOPPED:
                raise FilterError(f"Cannot add a listener to stopped {self!r}.")

            self._listeners.append(listener)

        return self

    def watch(self, listener: Optional[Listener] = None) -> "PollingWatcher":
        """
        Start polling, attaching the given listener first. The first poll happens
        right away.

        Raises:
            :class:`~ethrpc.exceptions.FilterError`: When the watcher was stopped.
        """
        with self._lock:
            if self.state == FilterState.STOPPED:
                raise FilterError(f"Cannot watch stopped {self!r}.")

            if listener is not None:
                self._listeners.append(listener)

            if self.state == FilterState.WATCHING:
                return self

            self.state = FilterState.WATCHING

        self.manager.schedule(self)
        return self

    def stop_watching(self):
        """
        Stop polling. No poll starts after this returns, though the result of a poll
        that is already in flight is still delivered. Safe to call from a listener,
        and more than once.
        """
        with self._lock:
            if self.state == FilterState.STOPPED:
                return

            self.state = FilterState.STOPPED

        self._on_stop()

    def _on_stop(self):
        pass

    def poll(self) -> Any:
        raise NotImplementedError()

    def should_notify(self, result: Any) -> bool:
        return True

    def tick(self):
        """
        Poll once and notify listeners. Errors are delivered to listeners;
        polling goes on regardless.
        """
        try:
            result = self.poll()
        except Exception as err:
            logger.debug(f"Poll of {self!r} failed: {err}")
            self._notify(err, None)
            return

        if self.should_notify(result):
            self._notify(None, result)

    def _notify(self, err: Optional[Exception], result: Any):
        for listener in self.listeners:
            try:
                listener(err, result)
            except Exception as listener_err:
                logger.error_from_exception(listener_err, f"Exception in listener of {self!r}.")


class Filter(PollingWatcher):
    """
    A filter installed on the node: new blocks (``"latest"``), pending
    transactions (``"pending"``) or logs matching :class:`~ethrpc.types.events.FilterOptions`.
    Listeners receive each batch of changes as a list, in node order.
    """

    def __init__(
        self,
        manager: "FilterManager",
        filter_id: str,
        kind: str,
        options: Optional[FilterOptions] = None,
        formatter: Optional[Formatter] = None,
        poll_interval: float = 0.5,
        notify_empty: bool = False,
    ):
        super().__init__(manager, poll_interval)
        self.filter_id = filter_id
        self.kind = kind
        self.options = options
        self.formatter = formatter or _default_formatter(kind)
        self.notify_empty = notify_empty

    def __repr__(self) -> str:
        return f"<Filter {self.kind} id={self.filter_id} {self.state.value}>"

    @property
    def is_log_filter(self) -> bool:
        return self.kind == "log"

    def format(self, entries: Optional[list]) -> list:
        return [self.formatter(entry) for entry in entries or []]

    def poll(self) -> list:
        return self.format(self.requests.request("eth_getFilterChanges", [self.filter_id]))

    def should_notify(self, result: list) -> bool:
        return bool(result) or self.notify_empty

    def get(self) -> list:
        """
        Get every entry of the filter: all matching logs for log filters,
        changes since the last poll otherwise.
        """
        method = "eth_getFilterLogs" if self.is_log_filter else "eth_getFilterChanges"
        return self.format(self.requests.request(method, [self.filter_id]))

    def get_async(self, callback: Optional[Listener] = None):
        """
        Deferred :meth:`get`, returning a ``concurrent.futures.Future``.
        """
        return self.requests.defer(self.get, callback=callback)

    def _on_stop(self):
        try:
            self.requests.request("eth_uninstallFilter", [self.filter_id])
        except EthRPCException as err:
            # Nodes expire idle filters on their own.
            logger.warn_from_exception(err, f"Failed to uninstall filter '{self.filter_id}'.")


class SyncingWatcher(PollingWatcher):
    """
    Polls ``eth_syncing`` and notifies listeners when the node starts syncing
    (``True``, then the status), makes progress (the new status) or stops
    syncing (``False``).
    """

    def __init__(self, manager: "FilterManager", poll_interval: float):
        super().__init__(manager, poll_interval)
        self.last_state: Union[bool, SyncingStatus] = False

    def poll(self) -> Union[bool, SyncingStatus]:
        result = self.requests.request("eth_syncing")
        return SyncingStatus.model_validate(result) if result else False

    def tick(self):
        try:
            state = self.poll()
        except Exception as err:
            self._notify(err, None)
            return

        if state == self.last_state:
            return

        if self.last_state is False and state is not False:
            # Let listeners know first that syncing started.
            self._notify(None, True)

        self.last_state = state
        self._notify(None, state)


def _default_formatter(kind: str) -> Formatter:
    if kind == "log":
        return Log.model_validate

    return HexBytes


class FilterManager:
    """
    Creates filters and runs every watcher's polls on one scheduler thread,
    each at its own interval. Watchers are kept in a heap ordered by when they
    are next due; stopped watchers are dropped when they come up.
    """

    def __init__(
        self,
        requests: RequestManager,
        poll_interval: float = 0.5,
        notify_empty_changes: bool = False,
    ):
        self.requests = requests
        self.poll_interval = poll_interval
        self.notify_empty_changes = notify_empty_changes
        self._watchers: list[PollingWatcher] = []
        self._schedule: list[tuple[float, int, PollingWatcher]] = []
        self._sequence = itertools.count()
        self._condition = threading.Condition()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    def __repr__(self) -> str:
        return f"<FilterManager watchers={len(self.watchers)}>"

    @property
    def watchers(self) -> list[PollingWatcher]:
        """
        Watchers that have not been stopped.
        """
        with self._condition:
            return [w for w in self._watchers if w.state != FilterState.STOPPED]

    def new_filter(
        self,
        options: FilterSpec,
        formatter: Optional[Formatter] = None,
        poll_interval: Optional[float] = None,
        notify_empty: Optional[bool] = None,
    ) -> Filter:
        """
        Install a filter on the node. It starts polling once watched.

        Args:
            options (Union[str, FilterOptions, dict]): ``"latest"`` for new block hashes,
              ``"pending"`` for pending transaction hashes, or log filter options.
            formatter (Optional[Callable]): Converts each raw entry. Defaults to
              :class:`~hexbytes.HexBytes` for hashes and
              :class:`~ethrpc.types.events.Log` for logs.
            poll_interval (Optional[float]): Seconds between polls.
            notify_empty (Optional[bool]): Whether to call listeners when nothing changed.

        Returns:
            :class:`~ethrpc.managers.filters.Filter`
        """
        if isinstance(options, str):
            if options == "latest":
                kind, method, params = "block", "eth_newBlockFilter", []
            elif options == "pending":
                kind, method, params = "pending", "eth_newPendingTransactionFilter", []
            else:
                raise FilterError(
                    f"Unknown filter '{options}'. Use 'latest', 'pending' or filter options."
                )

            filter_options = None

        else:
            filter_options = (
                options
                if isinstance(options, FilterOptions)
                else FilterOptions.model_validate(options)
            )
            kind, method, params = "log", "eth_newFilter", [filter_options.to_rpc()]

        self._check_open()
        filter_id = self.requests.request(method, params)
        log_filter = Filter(
            self,
            filter_id,
            kind,
            options=filter_options,
            formatter=formatter,
            poll_interval=self.poll_interval if poll_interval is None else poll_interval,
            notify_empty=self.notify_empty_changes if notify_empty is None else notify_empty,
        )
        logger.debug(f"Installed {log_filter!r}.")
        self._track(log_filter)
        return log_filter

    def new_syncing_watcher(self, poll_interval: Optional[float] = None) -> SyncingWatcher:
        self._check_open()
        watcher = SyncingWatcher(
            self, self.poll_interval if poll_interval is None else poll_interval
        )
        self._track(watcher)
        return watcher

    def schedule(self, watcher: PollingWatcher, delay: float = 0):
        """
        Queue the next poll of the watcher, starting the scheduler thread if needed.
        """
        with self._condition:
            self._check_open()
            heapq.heappush(
                self._schedule, (time.monotonic() + delay, next(self._sequence), watcher)
            )
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run, name="ethrpc-filters", daemon=True
                )
                self._thread.start()

            self._condition.notify()

    def reset(self, keep_syncing: bool = False):
        """
        Stop every watcher. Node-side filters are uninstalled.

        Args:
            keep_syncing (bool): Set to ``True`` to keep syncing watchers running.
        """
        for watcher in self.watchers:
            if keep_syncing and isinstance(watcher, SyncingWatcher):
                continue

            watcher.stop_watching()

        with self._condition:
            self._watchers = [w for w in self._watchers if w.state != FilterState.STOPPED]

    def close(self):
        """
        Stop every watcher and end the scheduler thread.
        """
        self.reset()
        with self._condition:
            self._closed = True
            thread, self._thread = self._thread, None
            self._schedule.clear()
            self._condition.notify_all()

        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _check_open(self):
        if self._closed:
            raise FilterError("The filter manager is closed.")

    def _track(self, watcher: PollingWatcher):
        with self._condition:
            self._watchers = [w for w in self._watchers if w.state != FilterState.STOPPED]
            self._watchers.append(watcher)

    def _next_due(self) -> Optional[PollingWatcher]:
        # Blocks until a watcher is due. Returns ``None`` once closed.
        with self._condition:
            while not self._closed:
                if not self._schedule:
                    self._condition.wait()
                    continue

                due, _, watcher = self._schedule[0]
                if not watcher.is_watching:
                    heapq.heappop(self._schedule)
                    continue

                delay = due - time.monotonic()
                if delay <= 0:
                    heapq.heappop(self._schedule)
                    return watcher

                self._condition.wait(timeout=delay)

            return None

    def _run(self):
        while (watcher := self._next_due()) is not None:
            watcher.tick()
            if not watcher.is_watching:
                continue

            with self._condition:
                if self._closed:
                    return

                heapq.heappush(
                    self._schedule,
                    (time.monotonic() + watcher.poll_interval, next(self._sequence), watcher),
                )


__all__ = [
    "Filter",
    "FilterManager",
    "FilterState",
    "Formatter",
    "Listener",
    "PollingWatcher",
    "SyncingWatcher",
]
