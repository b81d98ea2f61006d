from fastapi import APIRouter, Depends, HTTPException

from homevault.core.backend import BackendClient, get_backend
from homevault.core.deps import AuthContext, get_auth_context
from homevault.schemas.dashboard import (
    Badge,
    DashboardResponse,
    DashboardStateResponse,
    OwnerProfile,
    PanelUpdate,
    SelectionUpdate,
)
from homevault.schemas.document import DocumentResponse
from homevault.services import documents as document_service
from homevault.services import properties as property_service
from homevault.services.dashboard import DashboardStore, get_dashboard_store
from homevault.services.formatting import verification_badge
from homevault.services.owners import get_owner_profile

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/", response_model=DashboardResponse)
async def get_dashboard(
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
    store: DashboardStore = Depends(get_dashboard_store),
):
    owner = await get_owner_profile(backend, ctx)
    profile = None
    if owner:
        color, text = verification_badge(owner.verification_status)
        profile = OwnerProfile(
            full_name=owner.full_name,
            verification_status=owner.verification_status,
            badge=Badge(color=color, text=text),
        )
    state = DashboardStateResponse.model_validate(store.get(ctx.user_id))
    return DashboardResponse(**state.model_dump(), owner=profile)


@router.put("/selection", response_model=DashboardStateResponse)
async def select_property(
    payload: SelectionUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
    store: DashboardStore = Depends(get_dashboard_store),
):
    if not await property_service.get_property(backend, ctx, payload.property_id):
        raise HTTPException(status_code=404, detail="Property not found")
    return DashboardStateResponse.model_validate(
        store.select_property(ctx.user_id, payload.property_id)
    )


@router.put("/panel", response_model=DashboardStateResponse)
async def set_property_panel(
    payload: PanelUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    store: DashboardStore = Depends(get_dashboard_store),
):
    return DashboardStateResponse.model_validate(
        store.set_property_form(ctx.user_id, payload.show_property_form)
    )


@router.get("/documents", response_model=list[DocumentResponse])
async def list_selected_documents(
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
    store: DashboardStore = Depends(get_dashboard_store),
):
    selected = store.get(ctx.user_id).selected_property_id
    return await document_service.list_documents(backend, ctx, selected)
