from ethrpc.modules.base import ModuleAPI, deferrable
from ethrpc.utils.misc import to_int


class NetModule(ModuleAPI):
    """
    The ``net`` RPC namespace.
    """

    @deferrable
    def get_listening(self) -> bool:
        """
        ``True`` if the node is listening for network connections.
        """
        return bool(self._request("net_listening"))

    @deferrable
    def get_peer_count(self) -> int:
        return to_int(self._request("net_peerCount"))

    @property
    def listening(self) -> bool:
        return self.get_listening()

    @property
    def peer_count(self) -> int:
        return self.get_peer_count()
