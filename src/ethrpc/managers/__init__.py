def __getattr__(name: str):
    if name in ("Filter", "FilterManager", "FilterState", "PollingWatcher", "SyncingWatcher"):
        import ethrpc.managers.filters as filters_module

        return getattr(filters_module, name)

    elif name == "RequestManager":
        from ethrpc.managers.requests import RequestManager

        return RequestManager

    else:
        raise AttributeError(name)


__all__ = [
    "Filter",
    "FilterManager",
    "FilterState",
    "PollingWatcher",
    "RequestManager",
    "SyncingWatcher",
]
