"""Rate limiting configuration for the API."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from pathway.core.config import settings

DEFAULT_LIMITS = [] if settings.RATE_LIMIT_API <= 0 else [f"{settings.RATE_LIMIT_API}/minute"]

# In-memory storage; limits are per process
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    default_limits=DEFAULT_LIMITS,
    enabled=settings.RATE_LIMIT_ENABLED,
)

AUTH_LIMIT = f"{settings.RATE_LIMIT_AUTH}/minute"
