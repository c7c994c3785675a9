import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 500


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propaga o x-correlation-id e loga requisições lentas."""

    async def dispatch(self, request, call_next):
        cid = request.headers.get('x-correlation-id') or f"vt-{uuid.uuid4()}"
        request.state.correlation_id = cid

        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        response.headers['x-correlation-id'] = cid

        if duration_ms > SLOW_REQUEST_MS:
            logger.warning(
                f"🐢 Requisição lenta: {request.method} {request.url.path} → "
                f"{response.status_code} em {duration_ms:.0f}ms [{cid}]"
            )
        return response
