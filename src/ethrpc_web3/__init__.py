from .transport import Web3Transport

__all__ = [
    "Web3Transport",
]
