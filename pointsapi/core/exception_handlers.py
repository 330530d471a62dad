import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .exceptions import InternalServerError, StoreUnavailableError

logger = logging.getLogger("pointsapi")


def _describe(request: Request) -> str:
    client = request.client.host if request.client else "-"
    return f"{request.method} {request.url.path} from {client}"


def _error_body(
    code: str, message: str, details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details or {}},
    }


async def handle_base_api_exception(request, exc):
    """도메인 예외: 4xx 는 WARNING, 5xx(저장소/RPC 장애)는 ERROR"""
    line = f"[{exc.error_code}] {_describe(request)} -> {exc.status_code}: {exc.message}"
    if exc.status_code >= 500:
        logger.error(f"{line} {exc.details}")
    else:
        logger.warning(line)
    return JSONResponse(status_code=exc.status_code, content=exc.detail)  # type: ignore[arg-type]


async def handle_http_exception(request, exc):
    """인증 의존성 등에서 발생한 HTTPException 을 공통 에러 형식으로 변환"""
    line = f"[HTTPException] {_describe(request)} -> {exc.status_code}: {exc.detail}"
    if exc.status_code >= 500:
        tb_str = "".join(traceback.format_tb(exc.__traceback__))
        logger.error(f"{line}\n{tb_str}")
    else:
        logger.warning(line)

    if isinstance(exc.detail, dict) and "error" in exc.detail:  # type: ignore[truthy-bool]
        content = exc.detail  # type: ignore[assignment]
    else:
        content = _error_body("HTTP_ERROR", str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None)
    )


async def handle_validation_error(request, exc):
    logger.warning(f"[VALIDATION_001] {_describe(request)} -> 422: {exc.errors()}")
    content = _error_body(
        "VALIDATION_001",
        "Validation failed",
        {"errors": jsonable_encoder(exc.errors())},
    )
    return JSONResponse(status_code=422, content=content)


async def handle_store_error(request, exc):
    """서비스에서 변환되지 않은 DB 연결 오류 -> 503 (재시도 가능)"""
    logger.error(f"[STORE_001] {_describe(request)}: {type(exc).__name__}: {exc}")
    unavailable = StoreUnavailableError()
    return JSONResponse(status_code=unavailable.status_code, content=unavailable.detail)  # type: ignore[arg-type]


async def handle_unexpected_error(request, exc):
    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"[Unhandled Error] {_describe(request)}\n"
        f"{type(exc).__name__}: {exc}\n{tb_str}"
    )
    internal = InternalServerError()
    return JSONResponse(status_code=internal.status_code, content=internal.detail)  # type: ignore[arg-type]
