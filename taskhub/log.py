import logging
import time

from fastapi import FastAPI, Request

from taskhub.config import Settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_CONFIGURED_FLAG = "_taskhub_configured"

def configure_logging(settings: Settings) -> None:
    root = logging.getLogger()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root.setLevel(level)

    # create_app() runs once per test; only attach the handler the first time
    if getattr(root, _CONFIGURED_FLAG, False):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    setattr(root, _CONFIGURED_FLAG, True)

def install_request_logging(app: FastAPI) -> None:
    logger = logging.getLogger("taskhub.http")

    @app.middleware("http")
    async def _log_request(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
