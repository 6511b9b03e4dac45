def __getattr__(name: str):
    if name in (
        "LogInputABICollection",
        "decode_log",
        "decode_result",
        "encode_arguments",
        "encode_call",
        "encode_topic",
        "get_event_topic",
        "get_method_selector",
        "parse_abi",
    ):
        import ethrpc.utils.abi as abi_module

        return getattr(abi_module, name)

    elif name in ("BaseModel",):
        from ethrpc.utils.basemodel import BaseModel

        return BaseModel

    elif name in (
        "BLOCK_TAGS",
        "EMPTY_BYTES32",
        "ZERO_ADDRESS",
        "is_block_tag",
        "load_config",
        "log_instead_of_fail",
        "to_address",
        "to_hex_data",
        "to_int",
        "to_quantity",
    ):
        import ethrpc.utils.misc as misc_module

        return getattr(misc_module, name)

    else:
        raise AttributeError(name)


__all__ = [
    "BLOCK_TAGS",
    "BaseModel",
    "EMPTY_BYTES32",
    "LogInputABICollection",
    "ZERO_ADDRESS",
    "decode_log",
    "decode_result",
    "encode_arguments",
    "encode_call",
    "encode_topic",
    "get_event_topic",
    "get_method_selector",
    "is_block_tag",
    "load_config",
    "log_instead_of_fail",
    "parse_abi",
    "to_address",
    "to_hex_data",
    "to_int",
    "to_quantity",
]
