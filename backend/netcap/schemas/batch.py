from typing import List, Optional

from pydantic import field_validator

from netcap.schemas.base import CamelModel


class SavedPathBatch(CamelModel):
    id: str
    name: str
    text: str
    created_at: str = ""


class SavedPathBatchCreate(CamelModel):
    id: Optional[str] = None
    name: str
    text: str

    @field_validator("name", "text")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class SavedPathBatchList(CamelModel):
    workspace_id: str
    network_ref: str
    batches: List[SavedPathBatch]
