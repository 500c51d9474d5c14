from slowapi import Limiter
from slowapi.util import get_remote_address

from sharepoint_dedup.config import settings

# Scans walk whole sites and are by far the most expensive call against Graph
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit.default_limit],
    enabled=settings.rate_limit.enabled,
)

SCAN_LIMIT = settings.rate_limit.scan_limit
