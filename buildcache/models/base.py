"""Base models for build-tool JSON serialization."""

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic.alias_generators import to_pascal


class ToolJSONModel(BaseModel):
    """Base model for documents emitted by the toolchain (PascalCase JSON keys).

    Fields are declared snake_case; ``to_pascal`` produces the toolchain key
    (``import_path`` -> ``ImportPath``). Keys whose capitalisation does not
    follow that rule (``CgoCFLAGS``) declare an explicit alias instead.
    """

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
    )
