import logging

from homevault.core.backend import BackendClient, BackendError
from homevault.core.deps import AuthContext
from homevault.models.owner import TABLE, HouseOwner

logger = logging.getLogger(__name__)


async def get_owner_profile(backend: BackendClient, ctx: AuthContext) -> HouseOwner | None:
    """The signed-in owner's profile row, or None.

    The dashboard renders without a profile, so a failed read is logged and
    treated as "no profile" rather than failing the whole page.
    """
    try:
        rows = await backend.select(TABLE, ctx.access_token, eq={"id": ctx.user_id}, limit=1)
    except BackendError as e:
        logger.warning("Owner profile for %s unavailable: %s", ctx.user_id, e.message)
        return None
    return HouseOwner.model_validate(rows[0]) if rows else None
