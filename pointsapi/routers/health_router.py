from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pointsapi.database.session import get_db
from pointsapi.schemas.health import HealthCheckResponse

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Health check endpoint."""

    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return HealthCheckResponse(status="degraded", database="unavailable", error=str(e))
    return HealthCheckResponse()
