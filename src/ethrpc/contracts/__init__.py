from .base import ContractEvent, ContractFactory, ContractInstance, ContractMethodHandler

__all__ = [
    "ContractEvent",
    "ContractFactory",
    "ContractInstance",
    "ContractMethodHandler",
]
