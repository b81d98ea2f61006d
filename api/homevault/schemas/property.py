import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, computed_field, field_validator

from homevault.models.property import PropertyType
from homevault.schemas.common import Notice, require_text
from homevault.services.formatting import format_property_type


class PropertyCreate(BaseModel):
    property_name: str
    address: str
    property_type: PropertyType = PropertyType.HOUSE

    @field_validator("property_name", "address")
    @classmethod
    def present(cls, v: str) -> str:
        return require_text(v)


class PropertyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    property_name: str
    address: str
    property_type: PropertyType
    created_at: datetime
    selected: bool = False

    @computed_field
    @property
    def property_type_label(self) -> str:
        return format_property_type(self.property_type.value)


class PropertyCreateResult(BaseModel):
    property: PropertyResponse
    notice: Notice
