def __getattr__(name: str):
    if name in ("HexBytes",):
        from hexbytes import HexBytes

        return HexBytes

    elif name in (
        "ABIArgument",
        "ABIItem",
        "ABIList",
        "ConstructorABI",
        "ErrorABI",
        "EventABI",
        "EventArgument",
        "FallbackABI",
        "FunctionABI",
    ):
        import ethrpc.types.abi as abi_module

        return getattr(abi_module, name)

    elif name in ("AddressType", "RawAddress"):
        import ethrpc.types.address as address_module

        return getattr(address_module, name)

    elif name in ("HexBytesType", "HexInt"):
        import ethrpc.types.basic as basic_module

        return getattr(basic_module, name)

    elif name in ("Block", "SyncingStatus"):
        import ethrpc.types.blocks as blocks_module

        return getattr(blocks_module, name)

    elif name in ("ContractLog", "FilterOptions", "Log"):
        import ethrpc.types.events as events_module

        return getattr(events_module, name)

    elif name in ("CurrencyValue", "Transaction", "TransactionReceipt", "TransactionRequest"):
        import ethrpc.types.transactions as transactions_module

        return getattr(transactions_module, name)

    elif name in ("BlockID", "BlockTag", "ContractCode"):
        import ethrpc.types.vm as vm_module

        return getattr(vm_module, name)

    else:
        raise AttributeError(name)


__all__ = [
    "ABIArgument",
    "ABIItem",
    "ABIList",
    "AddressType",
    "Block",
    "BlockID",
    "BlockTag",
    "ConstructorABI",
    "ContractCode",
    "ContractLog",
    "CurrencyValue",
    "ErrorABI",
    "EventABI",
    "EventArgument",
    "FallbackABI",
    "FilterOptions",
    "FunctionABI",
    "HexBytes",
    "HexBytesType",
    "HexInt",
    "Log",
    "RawAddress",
    "SyncingStatus",
    "Transaction",
    "TransactionReceipt",
    "TransactionRequest",
]
