import logging
import uuid

from homevault.core.backend import BackendClient
from homevault.core.deps import AuthContext
from homevault.core.events import Event, EventBus, EventKind
from homevault.models.property import TABLE, Property
from homevault.schemas.property import PropertyCreate

logger = logging.getLogger(__name__)


async def create_property(
    backend: BackendClient,
    bus: EventBus,
    ctx: AuthContext,
    payload: PropertyCreate,
) -> Property:
    row = await backend.insert(
        TABLE,
        ctx.access_token,
        {
            "owner_id": ctx.user_id,
            "property_name": payload.property_name,
            "address": payload.address,
            "property_type": payload.property_type.value,
        },
    )
    prop = Property.model_validate(row)
    logger.info("Property %s created for owner %s", prop.id, ctx.user_id)
    bus.publish(Event(EventKind.PROPERTY_CREATED, ctx.user_id, {"property_id": str(prop.id)}))
    return prop


async def list_properties(backend: BackendClient, ctx: AuthContext) -> list[Property]:
    """Newest first."""
    rows = await backend.select(
        TABLE,
        ctx.access_token,
        eq={"owner_id": ctx.user_id},
        order_by="created_at",
        descending=True,
    )
    return [Property.model_validate(r) for r in rows]


async def get_property(
    backend: BackendClient,
    ctx: AuthContext,
    property_id: uuid.UUID,
) -> Property | None:
    rows = await backend.select(
        TABLE,
        ctx.access_token,
        eq={"id": str(property_id), "owner_id": ctx.user_id},
        limit=1,
    )
    return Property.model_validate(rows[0]) if rows else None
