"""Security: session identity, rate limiting, audit trail."""

from src.security.auth import load_principal
from src.security.rate_limiter import rate_limiter

__all__ = ["load_principal", "rate_limiter"]
