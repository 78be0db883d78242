from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from risk_link.core.backoff import RetryLoop, RetryPolicy, is_retryable
from risk_link.core.config import Settings, get_settings, require_api_credentials
from risk_link.core.errors import InvalidResponseError, UpstreamStatusError
from risk_link.core.logger import log_event
from risk_link.models.assessment import AssessmentResults
from risk_link.models.patient import Metadata, PageEnvelope, Pagination, Patient

Sleep = Callable[[float], Awaitable[Any]]
RetryCallback = Callable[[int, float, str], None]


class AssessmentApiClient:
    """평가 API 클라이언트

    모든 요청은 RetryPolicy에 따라 429/500/503 응답과 전송 오류를 재시도한다.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        policy: RetryPolicy | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
        run_id: str = "-",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self.run_id = run_id
        self._headers = {"x-api-key": api_key}
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
        run_id: str = "-",
    ) -> "AssessmentApiClient":
        """설정에서 클라이언트 생성

        Raises:
            ConfigurationError: API 키 또는 기본 URL이 없을 때
        """
        api_key, base_url = require_api_credentials(settings)
        return cls(
            api_key,
            base_url,
            policy=RetryPolicy.from_settings(settings),
            timeout=settings.request_timeout,
            transport=transport,
            sleep=sleep,
            run_id=run_id,
        )

    async def fetch_patients_page(
        self,
        page: int,
        limit: int = 5,
        on_retry: RetryCallback | None = None,
    ) -> PageEnvelope:
        """환자 목록 한 페이지를 조회

        Args:
            page: 페이지 번호(1부터)
            limit: 페이지 크기
            on_retry: 재시도 예약 시 호출되는 콜백(다음 시도 번호, 대기 초, 원인)

        Returns:
            페이지 응답. data가 목록이 아니면 빈 목록과 data_valid=False
        """
        response = await self._request(
            "GET",
            "/patients",
            f"fetch page {page}",
            on_retry,
            params={"page": page, "limit": limit},
        )
        body = _json_object(response)
        pagination = _pagination(body.get("pagination"), page, limit)
        metadata = _metadata(body.get("metadata"))

        raw_data = body.get("data")
        if not isinstance(raw_data, list):
            log_event(
                "page_data_invalid",
                "WARNING",
                self.run_id,
                "fetch",
                f"페이지 {page} data 형식 오류, 빈 목록으로 대체",
            )
            return PageEnvelope(
                data=[], pagination=pagination, metadata=metadata, data_valid=False
            )

        patients = []
        for item in raw_data:
            if not isinstance(item, dict):
                log_event(
                    "record_skipped",
                    "WARNING",
                    self.run_id,
                    "fetch",
                    f"페이지 {page} 객체가 아닌 레코드 제외: {item!r}",
                )
                continue
            patients.append(Patient.model_validate(item))
        return PageEnvelope(data=patients, pagination=pagination, metadata=metadata)

    async def submit_assessment(
        self,
        results: AssessmentResults | dict,
        on_retry: RetryCallback | None = None,
    ) -> dict:
        """평가 결과를 제출

        Args:
            results: 코호트 목록
            on_retry: 재시도 예약 시 호출되는 콜백

        Returns:
            제출 응답(가공하지 않음)
        """
        payload = (
            results.model_dump() if isinstance(results, AssessmentResults) else results
        )
        response = await self._request(
            "POST", "/submit-assessment", "submit assessment", on_retry, json=payload
        )
        return _json_object(response)

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        on_retry: RetryCallback | None,
        **kwargs: Any,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        loop = RetryLoop(self.policy, operation)
        while True:
            status_code: int | None = None
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.request(
                        method, url, headers=self._headers, **kwargs
                    )
            except httpx.TransportError as exc:
                error = f"{type(exc).__name__}: {exc}"
            else:
                if response.is_success:
                    loop.succeed()
                    return response
                if not is_retryable(response.status_code):
                    detail = response.text or response.reason_phrase
                    loop.fail(f"HTTP {response.status_code}: {detail}")
                    log_event(
                        "request_failed",
                        "ERROR",
                        self.run_id,
                        "http",
                        f"{operation} 실패: HTTP {response.status_code}",
                        error_code="HTTP_STATUS_001",
                    )
                    raise UpstreamStatusError(response.status_code, detail)
                status_code = response.status_code
                error = f"HTTP {status_code}: {response.reason_phrase}"

            attempt = loop.attempts_made
            delay = loop.retry(error, status_code)
            if delay is None:
                log_event(
                    "retry_exhausted",
                    "ERROR",
                    self.run_id,
                    "http",
                    f"{operation} 재시도 소진({attempt}회): {error}",
                    error_code="HTTP_RETRY_001",
                )
                raise loop.exhausted_error()
            log_event(
                "request_retry",
                "INFO",
                self.run_id,
                "http",
                f"{operation} 시도 {attempt}/{self.policy.max_attempts} 실패({error}), "
                f"{delay:g}초 후 재시도",
            )
            if on_retry is not None:
                on_retry(loop.attempts_made, delay, error)
            await self._sleep(delay)


def _json_object(response: httpx.Response) -> dict:
    """응답 본문을 JSON 객체로 파싱

    Raises:
        InvalidResponseError: JSON이 아니거나 객체가 아닐 때
    """
    try:
        body = response.json()
    except ValueError as exc:
        raise InvalidResponseError(
            f"Invalid response format: body is not JSON ({exc})"
        ) from exc
    if not isinstance(body, dict):
        raise InvalidResponseError("Invalid response format: response is not an object")
    return body


def _lenient_fields(model: type[BaseModel], raw: dict, defaults: dict) -> dict:
    """필드별로 검증해 잘못된 값만 기본값으로 대체

    Args:
        model: 대상 모델 클래스
        raw: 서버가 보낸 원본 딕셔너리
        defaults: 필드 기본값

    Returns:
        모델 생성용 값 딕셔너리
    """
    values = dict(defaults)
    for name, value in raw.items():
        field = model.model_fields.get(name)
        if field is None:
            values[name] = value
            continue
        try:
            values[name] = TypeAdapter(field.annotation).validate_python(value)
        except ValidationError:
            continue
    return values


def _metadata(raw: object) -> Metadata:
    if not isinstance(raw, dict):
        return Metadata()
    return Metadata(**_lenient_fields(Metadata, raw, {}))


def _pagination(raw: object, page: int, limit: int) -> Pagination:
    defaults = {
        "page": page,
        "limit": limit,
        "total": 0,
        "totalPages": 1,
        "hasNext": False,
        "hasPrevious": False,
    }
    if not isinstance(raw, dict):
        return Pagination(**defaults)
    return Pagination(**_lenient_fields(Pagination, raw, defaults))


def get_api_client() -> AssessmentApiClient:
    """현재 설정으로 클라이언트를 생성하는 FastAPI 의존성"""
    return AssessmentApiClient.from_settings(get_settings())
