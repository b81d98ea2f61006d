import enum
import uuid
from datetime import datetime

from pydantic import BaseModel

TABLE = "house_owners"


class VerificationStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class HouseOwner(BaseModel):
    """Row of ``house_owners``.  Created with the account and changed only by
    the verification workflow; this service only reads it."""

    id: uuid.UUID
    full_name: str
    phone: str | None = None
    verification_status: VerificationStatus = VerificationStatus.PENDING
    created_at: datetime | None = None
    updated_at: datetime | None = None
