from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reprice.api.dependencies.database import get_db
from reprice.models.dto.health import HealthResponse
from reprice.services import health_service

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    return await health_service.get_health(db)
