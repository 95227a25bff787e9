"""Rate limiting via slowapi.

The module-level Limiter is wired into the app in main.py; routers import it
to tighten individual endpoints (login, password reset).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
)

LOGIN_RATE_LIMIT = "10/minute"
