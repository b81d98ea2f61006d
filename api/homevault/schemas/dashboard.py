import uuid

from pydantic import BaseModel

from homevault.models.owner import VerificationStatus


class Badge(BaseModel):
    color: str
    text: str


class OwnerProfile(BaseModel):
    full_name: str
    verification_status: VerificationStatus
    badge: Badge


class DashboardStateResponse(BaseModel):
    selected_property_id: uuid.UUID | None
    show_property_form: bool
    property_version: int
    document_version: int
    documents_heading: str

    model_config = {"from_attributes": True}


class DashboardResponse(DashboardStateResponse):
    owner: OwnerProfile | None


class SelectionUpdate(BaseModel):
    property_id: uuid.UUID


class PanelUpdate(BaseModel):
    show_property_form: bool
