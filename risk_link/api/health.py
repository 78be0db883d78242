from fastapi import APIRouter

from risk_link.core.config import get_settings

router = APIRouter()

SERVICE_NAME = "risk-link"


@router.get("/health")
def health_check() -> dict:
    """서비스 이름, 버전과 헬스 상태를 반환"""
    settings = get_settings()
    return {
        "status": "정상",
        "service": SERVICE_NAME,
        "version": settings.version,
        "environment": settings.environment,
    }
