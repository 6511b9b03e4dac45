from .transport import TransportAPI

__all__ = [
    "TransportAPI",
]
