from fastapi import APIRouter, Depends

from homevault.core.backend import BackendClient, get_backend
from homevault.core.deps import AuthContext, get_auth_context
from homevault.core.events import EventBus, get_event_bus
from homevault.schemas.common import Notice
from homevault.schemas.property import PropertyCreate, PropertyCreateResult, PropertyResponse
from homevault.services import properties as property_service
from homevault.services.dashboard import DashboardStore, get_dashboard_store

router = APIRouter(prefix="/properties", tags=["properties"])

PROPERTY_ADDED_NOTICE_SECONDS = 2


@router.get("/", response_model=list[PropertyResponse])
async def list_properties(
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
    store: DashboardStore = Depends(get_dashboard_store),
):
    selected = store.get(ctx.user_id).selected_property_id
    props = await property_service.list_properties(backend, ctx)
    return [
        PropertyResponse.model_validate(p).model_copy(update={"selected": p.id == selected})
        for p in props
    ]


@router.post("/", response_model=PropertyCreateResult, status_code=201)
async def create_property(
    payload: PropertyCreate,
    ctx: AuthContext = Depends(get_auth_context),
    backend: BackendClient = Depends(get_backend),
    bus: EventBus = Depends(get_event_bus),
):
    prop = await property_service.create_property(backend, bus, ctx, payload)
    return PropertyCreateResult(
        property=PropertyResponse.model_validate(prop),
        notice=Notice(
            message="Property added successfully!",
            dismiss_after_seconds=PROPERTY_ADDED_NOTICE_SECONDS,
        ),
    )
