from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from risk_link.clients.assessment_api import AssessmentApiClient, Sleep
from risk_link.connectors.rest_pull_fetch import fetch_all_patients
from risk_link.core.config import get_settings
from risk_link.core.logger import log_event
from risk_link.core.progress import ProgressChannel, ProgressEvent
from risk_link.core.telemetry import TelemetryStore, utc_now
from risk_link.models.assessment import AssessedPatient, AssessmentResults
from risk_link.transforms.risk_scoring import assess_patient, categorize_patients


class AssessmentRun(BaseModel):
    """단일 평가 실행 결과"""

    run_id: str
    events: list[ProgressEvent] = Field(default_factory=list)
    patients: list[AssessedPatient] = Field(default_factory=list)
    results: AssessmentResults = Field(default_factory=AssessmentResults)
    submission: dict | None = None


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


def _submission_score(submission: dict | None) -> float | None:
    if not isinstance(submission, dict):
        return None
    results = submission.get("results")
    if not isinstance(results, dict):
        return None
    score = results.get("score")
    if isinstance(score, (int, float)) and not isinstance(score, bool):
        return float(score)
    return None


def _record_status(status: dict) -> None:
    if get_settings().telemetry_enabled:
        TelemetryStore().update_status(status)


async def run_assessment(
    client: AssessmentApiClient,
    progress: ProgressChannel | None = None,
    submit: bool = True,
    sleep: Sleep = asyncio.sleep,
) -> AssessmentRun:
    """조회, 평가, 분류, 제출을 순서대로 실행

    Args:
        client: 평가 API 클라이언트
        progress: 진행 이벤트 채널(선택)
        submit: False면 분류까지만 실행
        sleep: 페이지 간 대기 함수

    Returns:
        실행 결과

    Raises:
        PipelineError: 복구할 수 없는 조회 또는 제출 실패 시
    """
    settings = get_settings()
    channel = progress or ProgressChannel()
    run_id = client.run_id if client.run_id != "-" else new_run_id()
    client.run_id = run_id
    run = AssessmentRun(run_id=run_id)
    channel.subscribe(run.events.append)

    started_at = utc_now()
    start = datetime.now(timezone.utc)
    log_event("pipeline_start", "INFO", run_id, "fetch", "평가 실행 시작")
    _record_status(
        {
            "run_id": run_id,
            "started_at": started_at,
            "finished_at": None,
            "status": "running",
            "error_code": None,
            "patient_count": None,
            "submission_score": None,
        }
    )
    stage = "fetch"
    try:
        raw_patients = await fetch_all_patients(
            client,
            channel,
            page_limit=settings.page_limit,
            inter_page_delay=settings.inter_page_delay,
            sleep=sleep,
        )
        last_page = run.events[-1].page if run.events else 1
        total_pages = run.events[-1].total_pages if run.events else 1

        stage = "assess"
        channel.emit(
            last_page,
            total_pages,
            len(raw_patients),
            f"Analyzing {len(raw_patients)} patients...",
            "info",
        )
        run.patients = [assess_patient(patient) for patient in raw_patients]
        run.results = categorize_patients(run.patients)
        channel.emit(
            last_page,
            total_pages,
            len(raw_patients),
            "Analysis complete: "
            f"{len(run.results.high_risk_patients)} high risk, "
            f"{len(run.results.fever_patients)} fever, "
            f"{len(run.results.data_quality_issues)} data quality issues",
            "success",
        )
        log_event(
            "assessment_complete",
            "INFO",
            run_id,
            stage,
            "위험도 평가 완료",
            record_count=len(run.patients),
        )

        if submit:
            stage = "submit"
            channel.emit(
                last_page,
                total_pages,
                len(raw_patients),
                "Submitting assessment...",
                "info",
            )

            def _on_retry(attempt: int, delay: float, error: str) -> None:
                channel.emit(
                    last_page,
                    total_pages,
                    len(raw_patients),
                    f"Retrying submission in {delay:g}s "
                    f"(attempt {attempt}/{client.policy.max_attempts}): {error}",
                    "info",
                )

            run.submission = await client.submit_assessment(
                run.results, on_retry=_on_retry
            )
            score = _submission_score(run.submission)
            channel.emit(
                last_page,
                total_pages,
                len(raw_patients),
                "Assessment submitted"
                + (f" (score: {score:g})" if score is not None else ""),
                "success",
            )
    except Exception as exc:
        if stage != "fetch":
            channel.emit(
                run.events[-1].page if run.events else 1,
                run.events[-1].total_pages if run.events else 1,
                len(run.patients),
                f"Error: {exc}",
                "error",
            )
        error_code = getattr(exc, "code", "PIPE_STAGE_001")
        log_event(
            "pipeline_failed",
            "ERROR",
            run_id,
            stage,
            str(exc),
            error_code=error_code,
        )
        _record_status(
            {
                "run_id": run_id,
                "started_at": started_at,
                "finished_at": utc_now(),
                "status": "failed",
                "error_code": error_code,
                "patient_count": len(run.patients),
                "submission_score": None,
            }
        )
        raise

    log_event(
        "pipeline_complete",
        "INFO",
        run_id,
        stage,
        "평가 실행 완료",
        record_count=len(run.patients),
        duration_ms=int((datetime.now(timezone.utc) - start).total_seconds() * 1000),
    )
    _record_status(
        {
            "run_id": run_id,
            "started_at": started_at,
            "finished_at": utc_now(),
            "status": "submitted" if submit else "assessed",
            "error_code": None,
            "patient_count": len(run.patients),
            "submission_score": _submission_score(run.submission),
        }
    )
    return run
