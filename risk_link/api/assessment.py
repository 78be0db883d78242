from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from risk_link.clients.assessment_api import AssessmentApiClient, get_api_client
from risk_link.core.errors import PipelineError
from risk_link.core.pipeline import run_assessment

router = APIRouter()

logger = logging.getLogger("risk-link")

COHORT_FIELDS = ("high_risk_patients", "fever_patients", "data_quality_issues")


def _has_cohorts(payload: object) -> bool:
    if not isinstance(payload, dict):
        return False
    return all(isinstance(payload.get(field), list) for field in COHORT_FIELDS)


@router.post("/submit-assessment")
async def submit_assessment(
    request: Request, client: AssessmentApiClient = Depends(get_api_client)
):
    """코호트 목록을 평가 API로 전달

    Args:
        request: 세 코호트 목록을 JSON 본문으로 담은 요청
        client: 평가 API 클라이언트

    Returns:
        제출 응답(가공하지 않음), 본문 오류 시 400, 실패 시 500 응답
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    if not _has_cohorts(payload):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body. Missing required fields."},
        )
    try:
        return await client.submit_assessment(payload)
    except PipelineError as exc:
        logger.error("평가 제출 실패: %s", exc, extra={"event": "submit_failed"})
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to submit assessment", "message": exc.message},
        )


@router.post("/assessments/run")
async def run_full_assessment(
    submit: bool = True, client: AssessmentApiClient = Depends(get_api_client)
):
    """조회부터 제출까지 전체 평가를 실행

    Args:
        submit: False면 제출하지 않고 분류 결과까지만 반환
        client: 평가 API 클라이언트

    Returns:
        진행 이벤트, 평가된 환자, 코호트, 제출 응답
    """
    try:
        run = await run_assessment(client, submit=submit)
    except PipelineError as exc:
        return JSONResponse(
            status_code=500,
            content={"error": "Assessment run failed", "message": exc.message},
        )
    return run.model_dump()
