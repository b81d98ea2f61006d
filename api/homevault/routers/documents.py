import uuid
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response

from homevault.core.backend import BackendClient, BackendError, get_backend
from homevault.core.config import settings
from homevault.core.deps import AuthContext, get_auth_context
from homevault.core.events import EventBus, get_event_bus
from homevault.models.document import DocumentType
from homevault.schemas.common import Notice
from homevault.schemas.document import DocumentResponse, DocumentUploadResult, ReconcileResponse
from homevault.services import documents as document_service
from homevault.services import properties as property_service
from homevault.services.dashboard import DashboardStore, get_dashboard_store
from homevault.services.reconcile import reconcile_owner

router = APIRouter(prefix="/documents", tags=["documents"])

CHUNK_SIZE = 1024 * 1024  # 1 MB streaming chunks
UPLOADED_NOTICE_SECONDS = 3


def _validate_upload(filename: str) -> str:
    """Return the MIME type stored for the file, or raise 400."""
    mime = document_service.mime_type_for(filename)
    if mime is None:
        allowed = ", ".join(sorted(document_service.ALLOWED_TYPES))
        raise HTTPException(
            status_code=400,
            detail=f"File type not allowed. Allowed: {allowed}",
        )
    return mime


async def _read_limited(file: UploadFile, limit: int) -> bytes:
    # Stream the upload in chunks so an oversized file is rejected early
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise HTTPException(
                status_code=400,
                detail=f"File size must be less than {limit // (1024 * 1024)}MB",
            )
        chunks.append(chunk)
    return b"".join(chunks)


async def _get_document_or_404(backend: BackendClient, ctx: AuthContext, document_id: uuid.UUID):
    doc = await document_service.get_document(backend, ctx, document_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc


# ─── List documents ───────────────────────────────────────────────────────────

@router.get("/", response_model=list[DocumentResponse])
async def list_documents(
    property_id: uuid.UUID | None = None,
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
):
    return await document_service.list_documents(backend, ctx, property_id)


# ─── Upload document ──────────────────────────────────────────────────────────

@router.post("/", response_model=DocumentUploadResult, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    document_type: DocumentType = Form(DocumentType.IDENTITY),
    property_id: uuid.UUID | None = Form(None),
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
    bus: EventBus = Depends(get_event_bus),
    store: DashboardStore = Depends(get_dashboard_store),
):
    original_name = file.filename or "upload"
    mime = _validate_upload(original_name)
    content = await _read_limited(file, settings.max_upload_bytes)

    # Without an explicit property the dashboard's selection applies
    if property_id is None:
        property_id = store.get(ctx.user_id).selected_property_id
    if property_id is not None:
        if not await property_service.get_property(backend, ctx, property_id):
            raise HTTPException(status_code=404, detail="Property not found")

    doc = await document_service.upload_document(
        backend,
        bus,
        ctx,
        file_name=original_name,
        content=content,
        mime_type=mime,
        document_type=document_type,
        property_id=property_id,
    )
    return DocumentUploadResult(
        document=DocumentResponse.model_validate(doc),
        notice=Notice(
            message="Document uploaded successfully!",
            dismiss_after_seconds=UPLOADED_NOTICE_SECONDS,
        ),
    )


# ─── Reconcile storage ────────────────────────────────────────────────────────

@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_documents(
    dry_run: bool = False,
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
):
    report = await reconcile_owner(backend, ctx.access_token, ctx.user_id, dry_run=dry_run)
    return ReconcileResponse(
        dry_run=report.dry_run,
        orphaned_blobs=report.orphaned_blobs,
        dangling_rows=[d.id for d in report.dangling_rows],
    )


# ─── Download document ────────────────────────────────────────────────────────

@router.get("/{document_id}/download")
async def download_document(
    document_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
):
    doc = await _get_document_or_404(backend, ctx, document_id)
    try:
        content = await document_service.download_document(backend, ctx, doc)
    except BackendError as e:
        raise HTTPException(status_code=400, detail=f"Failed to download document: {e.message}")

    return Response(
        content=content,
        media_type=doc.mime_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(doc.file_name)}"},
    )


# ─── Delete document ──────────────────────────────────────────────────────────

@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: uuid.UUID,
    confirm: bool = Query(False, description="Must be true; deletion cannot be undone"),
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
    bus: EventBus = Depends(get_event_bus),
):
    if not confirm:
        raise HTTPException(status_code=400, detail="Deletion must be confirmed")

    doc = await _get_document_or_404(backend, ctx, document_id)
    try:
        await document_service.delete_document(backend, bus, ctx, doc)
    except BackendError as e:
        raise HTTPException(status_code=400, detail=f"Failed to delete document: {e.message}")
