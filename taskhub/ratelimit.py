from __future__ import annotations

import hashlib
import logging

from fastapi import HTTPException, Request

from taskhub.db import get_context

logger = logging.getLogger(__name__)

def _hash(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()[:24]

# fixed-window limiter using redis INCR + EXPIRE; the limit is read from
# the named settings attribute at request time
def rate_limit(name: str, limit_setting: str, window_seconds: int = 60):
    async def _dep(request: Request) -> None:
        ctx = get_context(request)
        if not ctx.settings.rate_limit_enabled:
            return

        limit = int(getattr(ctx.settings, limit_setting))
        ip = (request.client.host if request.client else "unknown").strip()
        key = f"rl:{name}:{_hash(ip)}"

        try:
            pipe = ctx.redis.pipeline()
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            count, _ = pipe.execute()
        except Exception as e:
            # fail-open if redis is down
            logger.warning("rate limiter unavailable: %s", e.__class__.__name__)
            return

        if int(count) > limit:
            raise HTTPException(status_code=429, detail="Too many requests, slow down")

    return _dep
