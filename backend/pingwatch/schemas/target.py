from pydantic import BaseModel, field_validator
from typing import Optional
import uuid as uuid_lib


class TargetCreate(BaseModel):
    name: str
    address: str
    uuid: Optional[str] = None

    @field_validator("name", "address")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("uuid")
    @classmethod
    def validate_uuid(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        try:
            return str(uuid_lib.UUID(v.strip()))
        except ValueError:
            raise ValueError(f"Invalid UUID: {v}")


class TargetResponse(BaseModel):
    uuid: str
    name: str
    address: str

    model_config = {"from_attributes": True}
