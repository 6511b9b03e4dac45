__all__ = [
    "Client",
    "ClientConfig",
    "from_wei",
    "logger",
    "to_wei",
]


def __getattr__(name: str):
    if name not in __all__:
        raise AttributeError(name)

    elif name == "Client":
        from ethrpc.client import Client

        return Client

    elif name == "ClientConfig":
        from ethrpc.config import ClientConfig

        return ClientConfig

    elif name == "logger":
        from ethrpc.logging import logger

        return logger

    import ethrpc.units as units_module

    return getattr(units_module, name)
