from .transport import HTTPTransport

__all__ = [
    "HTTPTransport",
]
