from ethrpc.modules.base import ModuleAPI, deferrable


class VersionModule(ModuleAPI):
    """
    Versions of the node and the network it is on.
    """

    @deferrable
    def get_node(self) -> str:
        """
        The client version of the node, such as ``Geth/v1.13.14-stable/linux-amd64/go1.21.7``.
        """
        return self._request("web3_clientVersion")

    @deferrable
    def get_network(self) -> str:
        """
        The network ID, as a decimal string.
        """
        return str(self._request("net_version"))

    @deferrable
    def get_ethereum(self) -> str:
        """
        The Ethereum protocol version.
        """
        return str(self._request("eth_protocolVersion"))

    @property
    def node(self) -> str:
        return self.get_node()

    @property
    def network(self) -> str:
        return self.get_network()

    @property
    def ethereum(self) -> str:
        return self.get_ethereum()
