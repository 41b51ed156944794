from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# Stored documents use camelCase field names; Python code uses snake_case
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
