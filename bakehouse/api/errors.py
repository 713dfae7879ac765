# bakehouse/api/errors.py
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bakehouse.services.errors import BizError

logger = logging.getLogger("bakehouse.api")


def error_body(code: str, message) -> dict:
    return {"error": {"code": code, "message": message}}


def biz_error_handler(request: Request, exc: BizError):
    # 4xx answers are routine (full slot, draft already finalized); keep them at INFO
    logger.info("%s %s -> %s %s: %s", request.method, request.url.path, exc.status, exc.code, exc.message)
    return JSONResponse(status_code=exc.status, content=error_body(exc.code, exc.message))


async def _unhandled_exc(_req: Request, exc: Exception):
    logger.exception("UNHANDLED_EXC: %s", exc)
    return JSONResponse(status_code=500, content=error_body("INTERNAL_ERROR", "internal error"))


async def _validation_exc(_req: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


async def _http_exc(_req: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BizError, biz_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_exc)
    app.add_exception_handler(HTTPException, _http_exc)
    app.add_exception_handler(Exception, _unhandled_exc)
