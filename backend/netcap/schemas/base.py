from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every capacity payload: snake_case in Python, camelCase on the wire."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
