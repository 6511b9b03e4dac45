from pydantic import BaseModel as _PydanticBaseModel
from pydantic import ConfigDict


class BaseModel(_PydanticBaseModel):
    """
    An ethrpc pydantic BaseModel. Wire (camelCase) aliases and
    Python (snake_case) names are both accepted when validating.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    def to_rpc(self) -> dict:
        """
        Serialize the model to its JSON-RPC form: camelCase keys,
        hex quantities and data, ``None`` values left out.
        """
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
