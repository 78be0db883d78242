class PipelineError(Exception):
    """파이프라인 예외의 기본 클래스"""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ConfigurationError(PipelineError):
    """API 키 또는 기본 URL이 없을 때 발생"""

    def __init__(self, has_api_key: bool, has_base_url: bool) -> None:
        super().__init__("CFG_MISSING_001", "API configuration missing")
        self.has_api_key = has_api_key
        self.has_base_url = has_base_url


class UpstreamStatusError(PipelineError):
    """재시도 대상이 아닌 HTTP 상태 응답"""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__("HTTP_STATUS_001", f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class InvalidResponseError(PipelineError):
    """응답 본문이 JSON 객체가 아닐 때 발생"""

    def __init__(self, message: str) -> None:
        super().__init__("HTTP_BODY_001", message)


class RetryExhaustedError(PipelineError):
    """재시도 횟수를 모두 소진했을 때 발생"""

    def __init__(self, operation: str, attempts: int, last_error: str | None) -> None:
        cause = last_error or "unknown error"
        super().__init__(
            "HTTP_RETRY_001",
            f"Failed to {operation} after {attempts} attempts: {cause}",
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
