# One JSON line per request: method, path, status, actor, duration.
# Never blocks the request, never writes to the database.

import time
from fastapi import Request
import json
import logging

logger = logging.getLogger("sitter_availability.requests")


async def request_log_middleware(request: Request, call_next):
    start_ts = time.time()

    response = await call_next(request)

    duration_ms = int((time.time() - start_ts) * 1000)

    record = {
        "ts": int(start_ts),
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "actor": request.headers.get("X-Actor-Id", ""),
        "ip": request.headers.get("X-Real-IP") or (request.client.host if request.client else ""),
        "duration_ms": duration_ms,
    }

    logger.info(json.dumps(record, ensure_ascii=False))

    return response
