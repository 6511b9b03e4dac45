from .base import DeferrableMixin, ModuleAPI, deferrable
from .eth import EthModule
from .net import NetModule
from .version import VersionModule

__all__ = [
    "DeferrableMixin",
    "EthModule",
    "ModuleAPI",
    "NetModule",
    "VersionModule",
    "deferrable",
]
