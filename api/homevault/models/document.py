import enum
import uuid
from datetime import datetime

from pydantic import BaseModel

TABLE = "documents"


class DocumentType(str, enum.Enum):
    IDENTITY = "identity"
    PROPERTY_DEED = "property_deed"
    TAX_DOCUMENT = "tax_document"
    CERTIFICATE = "certificate"
    OTHER = "other"


class Document(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    property_id: uuid.UUID | None = None  # unassociated documents are allowed
    document_type: DocumentType
    file_name: str
    file_path: str  # "{owner_id}/{ms_timestamp}.{ext}" inside the storage bucket
    file_size: int
    mime_type: str
    uploaded_at: datetime
