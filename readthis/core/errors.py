import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("readthis.errors")


def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # detail is client-facing; never put tokens in it.
    logger.info("HTTPException %s path=%s", exc.status_code, request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Missing or malformed fields are a plain 400 for clients.
    logger.info(
        "ValidationError path=%s fields=%s",
        request.url.path,
        [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()],
    )
    return JSONResponse(status_code=400, content={"detail": "Invalid request"})


def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("UnhandledException path=%s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
