"""Maps domain exceptions to JSON error responses"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from creator_wallet.api.dependencies import get_request_id
from creator_wallet.domain.exceptions import DomainException

logger = logging.getLogger(__name__)


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Render any domain failure as {"error": {"kind", "message"}}"""
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        f"{exc.kind}: {exc.message}",
        extra={"request_id": get_request_id(request), "path": request.url.path, "error_kind": exc.kind},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"kind": exc.kind, "message": exc.message}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
