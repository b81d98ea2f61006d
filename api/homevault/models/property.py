import enum
import uuid
from datetime import datetime

from pydantic import BaseModel

TABLE = "properties"


class PropertyType(str, enum.Enum):
    HOUSE = "house"
    APARTMENT = "apartment"
    COMMERCIAL = "commercial"
    LAND = "land"
    OTHER = "other"


class Property(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    property_name: str
    address: str
    property_type: PropertyType = PropertyType.HOUSE
    created_at: datetime
    updated_at: datetime | None = None
