from __future__ import annotations

import asyncio

from risk_link.clients.assessment_api import AssessmentApiClient, Sleep
from risk_link.core.logger import log_event
from risk_link.core.progress import ProgressChannel
from risk_link.models.patient import PageEnvelope, Patient


def _total_pages(envelope: PageEnvelope) -> int:
    total = envelope.pagination.totalPages
    if not isinstance(total, int) or total < 1:
        return 1
    return total


async def fetch_all_patients(
    client: AssessmentApiClient,
    progress: ProgressChannel | None = None,
    page_limit: int = 5,
    inter_page_delay: float = 0.5,
    sleep: Sleep = asyncio.sleep,
) -> list[Patient]:
    """평가 API에서 모든 페이지의 환자 레코드를 순차 조회

    첫 페이지에서 totalPages를 확인한 뒤 나머지 페이지를 고정 간격으로
    조회한다. 복구할 수 없는 오류는 error 이벤트를 발행한 뒤 그대로 전파한다.

    Args:
        client: 평가 API 클라이언트
        progress: 진행 이벤트 채널(선택)
        page_limit: 페이지 크기
        inter_page_delay: 페이지 사이 대기 시간(초)
        sleep: 대기 함수

    Returns:
        도착 순서대로 누적한 환자 목록
    """
    channel = progress or ProgressChannel()
    patients: list[Patient] = []
    current_page = 1
    total_pages = 1

    def _on_retry(attempt: int, delay: float, error: str) -> None:
        channel.emit(
            current_page,
            total_pages,
            len(patients),
            f"Retrying page {current_page} in {delay:g}s "
            f"(attempt {attempt}/{client.policy.max_attempts}): {error}",
            "info",
        )

    async def _fetch_page() -> None:
        nonlocal total_pages
        envelope = await client.fetch_patients_page(
            current_page, page_limit, on_retry=_on_retry
        )
        if not envelope.data_valid:
            channel.emit(
                current_page,
                total_pages,
                len(patients),
                f"Page {current_page} returned malformed data; continuing with 0 patients",
                "warning",
            )
        patients.extend(envelope.data)
        if current_page == 1:
            total_pages = _total_pages(envelope)
        channel.emit(
            current_page,
            total_pages,
            len(patients),
            f"Fetched page {current_page} of {total_pages} "
            f"({len(envelope.data)} patients)",
            "success",
        )

    try:
        channel.emit(
            current_page, total_pages, 0, "Starting to fetch patient data...", "info"
        )
        await _fetch_page()

        for current_page in range(2, total_pages + 1):
            await sleep(inter_page_delay)
            channel.emit(
                current_page,
                total_pages,
                len(patients),
                f"Fetching page {current_page} of {total_pages}...",
                "info",
            )
            await _fetch_page()
    except Exception as exc:
        channel.emit(
            current_page, total_pages, len(patients), f"Error: {exc}", "error"
        )
        log_event(
            "fetch_failed",
            "ERROR",
            client.run_id,
            "fetch",
            f"페이지 {current_page}/{total_pages} 조회 실패: {exc}",
            error_code=getattr(exc, "code", None),
            record_count=len(patients),
        )
        raise

    channel.emit(
        total_pages,
        total_pages,
        len(patients),
        f"Successfully fetched all {len(patients)} patients!",
        "success",
    )
    log_event(
        "fetch_complete",
        "INFO",
        client.run_id,
        "fetch",
        f"전체 {total_pages}페이지 조회 완료",
        record_count=len(patients),
    )
    return patients
