from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from risk_link.clients.assessment_api import AssessmentApiClient, get_api_client
from risk_link.connectors.rest_pull_fetch import fetch_all_patients
from risk_link.core.config import get_settings
from risk_link.core.errors import PipelineError
from risk_link.core.telemetry import TelemetryStore

router = APIRouter()

logger = logging.getLogger("risk-link")


@router.get("/fetch-patients")
async def fetch_patients(client: AssessmentApiClient = Depends(get_api_client)):
    """모든 환자 레코드를 조회해 그대로 반환

    Args:
        client: 평가 API 클라이언트

    Returns:
        환자 목록과 개수, 실패 시 500 응답
    """
    settings = get_settings()
    try:
        patients = await fetch_all_patients(
            client,
            page_limit=settings.page_limit,
            inter_page_delay=settings.inter_page_delay,
        )
    except PipelineError as exc:
        logger.error("환자 조회 실패: %s", exc, extra={"event": "fetch_patients_failed"})
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch patients", "message": exc.message},
        )
    return {
        "success": True,
        "patients": [patient.model_dump() for patient in patients],
        "count": len(patients),
    }


@router.get("/runs")
def list_runs(limit: int = 50) -> dict:
    """최근 평가 실행 상태를 반환

    Args:
        limit: 최대 행 수

    Returns:
        실행 상태 목록
    """
    if not get_settings().telemetry_enabled:
        return {"runs": []}
    return {"runs": TelemetryStore().query_runs(limit)}
