import logging

CONTEXT_DEFAULTS = {
    "event": "system",
    "run_id": "-",
    "stage": "-",
    "record_count": "-",
}

# httpx는 요청마다 INFO 로그를 남기므로 재시도 중 출력이 넘친다
NOISY_LOGGERS = ("httpx", "httpcore")


class RunContextFormatter(logging.Formatter):
    """평가 실행 문맥(event, run_id, stage, record_count)을 항상 채워 포맷"""

    def format(self, record: logging.LogRecord) -> str:
        for name, default in CONTEXT_DEFAULTS.items():
            if getattr(record, name, None) is None:
                setattr(record, name, default)
        return super().format(record)


def configure_logging(level: str) -> None:
    """애플리케이션 로깅을 설정

    Args:
        level: 로깅 레벨 문자열
    """
    handler = logging.StreamHandler()
    handler.setFormatter(
        RunContextFormatter(
            "%(asctime)s %(levelname)s %(name)s "
            "event=%(event)s run_id=%(run_id)s stage=%(stage)s "
            "records=%(record_count)s %(message)s"
        )
    )

    logging.basicConfig(level=level.upper(), handlers=[handler])
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
