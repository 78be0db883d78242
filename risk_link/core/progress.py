from __future__ import annotations

import asyncio
import logging
from typing import Callable, Literal

from pydantic import BaseModel, Field

from risk_link.core.telemetry import utc_now

logger = logging.getLogger("risk-link")

ProgressType = Literal["info", "success", "warning", "error"]


class ProgressEvent(BaseModel):
    """진행 상황 이벤트"""

    page: int = Field(..., description="현재 페이지")
    total_pages: int = Field(..., description="전체 페이지 수")
    patients_count: int = Field(..., description="지금까지 조회한 환자 수")
    message: str
    type: ProgressType = "info"
    timestamp: str = Field(default_factory=utc_now)


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressChannel:
    """진행 이벤트를 구독자에게 전달하는 채널

    구독자는 0개 이상이며 전달은 발행 후 망각 방식이다. 구독자 예외는
    기록만 하고 실행을 중단하지 않는다.
    """

    def __init__(self) -> None:
        self._subscribers: list[ProgressCallback] = []

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """구독자를 등록

        Args:
            callback: 이벤트 콜백

        Returns:
            구독 해제 함수
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def queue(self) -> asyncio.Queue:
        """이벤트를 쌓는 무제한 큐 구독자를 생성"""
        events: asyncio.Queue = asyncio.Queue()
        self.subscribe(events.put_nowait)
        return events

    def publish(self, event: ProgressEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "진행 이벤트 구독자 오류",
                    extra={"event": "progress_subscriber_failed"},
                )

    def emit(
        self,
        page: int,
        total_pages: int,
        patients_count: int,
        message: str,
        type: ProgressType = "info",
    ) -> ProgressEvent:
        """이벤트를 생성해 발행"""
        event = ProgressEvent(
            page=page,
            total_pages=total_pages,
            patients_count=patients_count,
            message=message,
            type=type,
        )
        self.publish(event)
        return event
