from slowapi import Limiter
from slowapi.util import get_remote_address

from homevault.core.config import settings

# Shared by the app middleware and the per-route decorators
limiter = Limiter(key_func=get_remote_address, storage_uri=settings.rate_limit_storage_uri)
