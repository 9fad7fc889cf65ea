from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from taskhub.context import AppContext
from taskhub.db import db_ping, get_context, redis_ping

router = APIRouter(tags=["health"])

@router.get("/health")
def health() -> dict:
    return {"status": "ok"}

# readiness probe
@router.get("/ready")
def ready(ctx: AppContext = Depends(get_context)):
    checks: dict[str, bool] = {}
    errors: dict[str, str] = {}

    for name, fn in (("db", db_ping), ("redis", redis_ping)):
        try:
            checks[name] = bool(fn(ctx))
        except Exception as e:
            checks[name] = False
            msg = str(e).strip()
            errors[name] = f"{e.__class__.__name__}{(': ' + msg) if msg else ''}"

    ok = all(checks.values())

    body: dict = {"status": "ok" if ok else "unready", "checks": checks}
    if errors:
        body["errors"] = errors

    # 200 only when db + redis are reachable, 503 with details otherwise
    return JSONResponse(status_code=200 if ok else 503, content=body)
