from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, matching the collector's JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
