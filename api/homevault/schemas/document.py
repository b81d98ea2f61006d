import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, computed_field

from homevault.models.document import DocumentType
from homevault.schemas.common import Notice
from homevault.services.formatting import format_category, format_file_size


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    property_id: uuid.UUID | None
    document_type: DocumentType
    file_name: str
    file_size: int
    mime_type: str
    uploaded_at: datetime

    @computed_field
    @property
    def document_type_label(self) -> str:
        return format_category(self.document_type.value)

    @computed_field
    @property
    def file_size_label(self) -> str:
        return format_file_size(self.file_size)


class DocumentUploadResult(BaseModel):
    document: DocumentResponse
    notice: Notice


class ReconcileResponse(BaseModel):
    dry_run: bool
    orphaned_blobs: list[str]   # stored files with no document row
    dangling_rows: list[uuid.UUID]  # document rows whose file is gone
