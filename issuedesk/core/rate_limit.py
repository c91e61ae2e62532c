"""
Login rate limiting (slowapi), keyed by client IP.

Each app builds its own ``LoginRateLimiter`` from the ``Settings`` handed
to ``create_app``, so counters and limits never leak between apps.
"""

from __future__ import annotations

import logging

from fastapi import Request
from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address

from issuedesk.core.config import Settings
from issuedesk.core.exceptions import TooManyRequests

logger = logging.getLogger(__name__)

_LOGIN_SCOPE = "login"


class LoginRateLimiter:
    def __init__(self, settings: Settings):
        self.enabled = settings.RATE_LIMIT_ENABLED
        self.limit = parse(settings.LOGIN_RATE_LIMIT)
        # memory:// gives every instance its own counters
        self.limiter = Limiter(
            key_func=get_remote_address,
            storage_uri="memory://",
            enabled=self.enabled,
        )

    def check(self, request: Request) -> None:
        """Count one login attempt; raise ``TooManyRequests`` over the limit."""
        if not self.enabled:
            return
        client = get_remote_address(request)
        if not self.limiter.limiter.hit(self.limit, _LOGIN_SCOPE, client):
            logger.warning("Login rate limit exceeded for %s", client)
            raise TooManyRequests(f"Rate limit exceeded: {self.limit}")
