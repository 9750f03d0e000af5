from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase aliases on the wire, snake_case attributes in Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
