import logging
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import OperationalError
from starlette.middleware.cors import CORSMiddleware

from pointsapi import containers
from pointsapi.config import settings
from pointsapi.core.exception_handlers import (
    handle_base_api_exception,
    handle_http_exception,
    handle_store_error,
    handle_unexpected_error,
    handle_validation_error,
)
from pointsapi.core.exceptions import BaseAPIException
from pointsapi.routers import (
    auth_router,
    batch_router,
    deposit_router,
    health_router,
    leaderboard_router,
    point_router,
    position_router,
)
from pointsapi.utils.config import init_logging

load_dotenv("pointsapi/.env")

app = FastAPI(title=settings.PROJECT_NAME, debug=settings.DEBUG)
app.container = containers.Container()  # type: ignore

init_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"Request: {request.method} {request.url}")
    response = await call_next(request)
    logger.info(f"Response: {response.status_code}")
    return response


app.add_exception_handler(BaseAPIException, handle_base_api_exception)
app.add_exception_handler(StarletteHTTPException, handle_http_exception)
app.add_exception_handler(RequestValidationError, handle_validation_error)
app.add_exception_handler(OperationalError, handle_store_error)
app.add_exception_handler(Exception, handle_unexpected_error)


@app.get("/")
def hello() -> dict:
    return {"message": settings.APP_NAME}


app.include_router(health_router.router)
app.include_router(auth_router.router, prefix=settings.API_V1_STR)
app.include_router(point_router.router, prefix=settings.API_V1_STR)
app.include_router(leaderboard_router.router, prefix=settings.API_V1_STR)
app.include_router(deposit_router.router, prefix=settings.API_V1_STR)
app.include_router(position_router.router, prefix=settings.API_V1_STR)
app.include_router(batch_router.router, prefix=settings.API_V1_STR)

handler = Mangum(app)
