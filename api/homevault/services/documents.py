"""
Document storage flows.

An upload is two backend calls (store the file, then insert the metadata
row) and a delete is two calls in the other direction (remove the file,
then the row).  Neither pair is atomic.  When the second call fails the
first is not undone: the failure is logged with the affected path and the
leftover is cleaned up by services.reconcile.
"""
import logging
import time
import uuid

from homevault.core.backend import BackendClient, BackendError
from homevault.core.deps import AuthContext
from homevault.core.events import Event, EventBus, EventKind
from homevault.models.document import TABLE, Document, DocumentType

logger = logging.getLogger(__name__)

# Extension -> MIME type.  Only the extension is checked, never the content.
ALLOWED_TYPES: dict[str, str] = {
    "pdf":  "application/pdf",
    "png":  "image/png",
    "jpg":  "image/jpeg",
    "jpeg": "image/jpeg",
}


def file_extension(file_name: str) -> str:
    """Text after the last dot, case preserved (whole name if there is none)."""
    return file_name.rsplit(".", 1)[-1]


def mime_type_for(file_name: str) -> str | None:
    return ALLOWED_TYPES.get(file_extension(file_name).lower())


def _now_ms() -> int:
    return int(time.time() * 1000)


def storage_path(owner_id: str, file_name: str, now_ms: int | None = None) -> str:
    """``{owner_id}/{millisecond timestamp}.{original extension}``."""
    if now_ms is None:
        now_ms = _now_ms()
    return f"{owner_id}/{now_ms}.{file_extension(file_name)}"


def path_timestamp_ms(path: str) -> int | None:
    """The upload timestamp embedded by storage_path, if the path has one."""
    stem = path.rsplit("/", 1)[-1].split(".", 1)[0]
    return int(stem) if stem.isdigit() else None


async def upload_document(
    backend: BackendClient,
    bus: EventBus,
    ctx: AuthContext,
    *,
    file_name: str,
    content: bytes,
    mime_type: str,
    document_type: DocumentType,
    property_id: uuid.UUID | None = None,
) -> Document:
    path = storage_path(ctx.user_id, file_name)

    # A failure here aborts before any row exists
    await backend.upload(ctx.access_token, path, content, mime_type)

    try:
        row = await backend.insert(
            TABLE,
            ctx.access_token,
            {
                "owner_id": ctx.user_id,
                "property_id": str(property_id) if property_id else None,
                "document_type": document_type.value,
                "file_name": file_name,
                "file_path": path,
                "file_size": len(content),
                "mime_type": mime_type,
            },
        )
    except BackendError as e:
        logger.warning("Stored %s but metadata insert failed (%s); file is orphaned", path, e.message)
        raise

    doc = Document.model_validate(row)
    logger.info("Uploaded %s (%d bytes) as %s", file_name, doc.file_size, path)
    bus.publish(Event(
        EventKind.DOCUMENT_UPLOADED,
        ctx.user_id,
        {"document_id": str(doc.id), "property_id": str(property_id) if property_id else None},
    ))
    return doc


async def list_documents(
    backend: BackendClient,
    ctx: AuthContext,
    property_id: uuid.UUID | None = None,
) -> list[Document]:
    """Newest upload first, optionally narrowed to one property."""
    eq = {"owner_id": ctx.user_id}
    if property_id:
        eq["property_id"] = str(property_id)
    rows = await backend.select(
        TABLE,
        ctx.access_token,
        eq=eq,
        order_by="uploaded_at",
        descending=True,
    )
    return [Document.model_validate(r) for r in rows]


async def get_document(
    backend: BackendClient,
    ctx: AuthContext,
    document_id: uuid.UUID,
) -> Document | None:
    rows = await backend.select(
        TABLE,
        ctx.access_token,
        eq={"id": str(document_id), "owner_id": ctx.user_id},
        limit=1,
    )
    return Document.model_validate(rows[0]) if rows else None


async def download_document(backend: BackendClient, ctx: AuthContext, doc: Document) -> bytes:
    return await backend.download(ctx.access_token, doc.file_path)


async def delete_document(
    backend: BackendClient,
    bus: EventBus,
    ctx: AuthContext,
    doc: Document,
) -> None:
    # If this fails the row is left untouched
    await backend.remove(ctx.access_token, [doc.file_path])

    try:
        await backend.delete(TABLE, ctx.access_token, eq={"id": str(doc.id)})
    except BackendError as e:
        logger.warning("Removed %s but row %s could not be deleted (%s)", doc.file_path, doc.id, e.message)
        raise

    logger.info("Deleted document %s (%s)", doc.id, doc.file_path)
    bus.publish(Event(EventKind.DOCUMENT_DELETED, ctx.user_id, {"document_id": str(doc.id)}))
