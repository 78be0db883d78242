from fastapi import APIRouter

from risk_link.api.assessment import router as assessment_router
from risk_link.api.health import router as health_router
from risk_link.api.patients import router as patients_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(patients_router, prefix="/api", tags=["patients"])
router.include_router(assessment_router, prefix="/api", tags=["assessment"])
